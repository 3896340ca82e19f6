from setuptools import setup, find_packages

setup(
    name="s3source",
    version="0.1.0",
    description="Package source backed by an S3 bucket: index, sync, cache and install.",
    license="GPL-3.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.8",
    install_requires=[
        "rich>=13.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "s3source=s3source.modules.cli:main",
        ],
    },
)
