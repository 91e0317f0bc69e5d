"""Package setup for fastdl_mirror."""

from setuptools import setup, find_packages

setup(
    name="fastdl-mirror",
    version="1.0.0",
    description="Mirror a directory-listing file host and decode its .bz2 files",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=5.0.0",
        "urllib3>=2.0.0",
    ],
    extras_require={
        "ui": [
            "tqdm>=4.66.0",
            "colorlog>=6.8.0",
        ],
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fastdl-mirror=fastdl_mirror.cli:main",
        ],
    },
)
