from setuptools import setup, find_packages

setup(
    name="bookmarksync",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=["requests", "cryptography"],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "bookmarksync = bookmarksync.cli:main",
        ]
    },
)
