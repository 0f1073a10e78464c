"""
Setup script for imap-session-lib
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="imap-session-lib",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Resilient IMAP sessions: auth negotiation, capability tracking and automatic reconnects",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/imap-session-lib",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications :: Email",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    python_requires=">=3.11",
    install_requires=[
        "IMAPClient>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov",
            "black",
            "flake8",
        ]
    }
)
