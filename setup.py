from setuptools import setup

setup(
    name="crx-downloader",
    version="0.1.0",
    description="Download browser extensions and extract the ZIP archive from CRX3 packages",
    author="debarshi17",
    author_email="your-email@example.com",
    url="https://github.com/debarshi17/crx-downloader",
    package_dir={"": "src"},
    py_modules=[
        "config",
        "crxdl",
        "downloader",
        "extension_ids",
        "unpacker",
        "utils",
    ],
    install_requires=[
        "requests>=2.31.0",
        "tqdm>=4.66.1",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "crxdl=crxdl:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Security",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
    ],
)
