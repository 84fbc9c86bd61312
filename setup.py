from setuptools import setup, find_packages

setup(
    name="djbooth",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core dependencies
        "pydantic>=2.5.2",
        "pyee>=11.0.1",
        "python-dotenv>=1.0.0",
        "aiohttp>=3.9.1,<3.14",
        "httpx>=0.25.0",

        # Audio
        "sounddevice>=0.4.6",
        "numpy>=1.24.0",
        "python-vlc>=3.0.20000",

        # Track metadata
        "spotipy>=2.23.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "pytest-cov>=4.1.0",
            "aioresponses>=0.7.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "djbooth=djbooth.main:main",
        ],
    },
    python_requires=">=3.11",
)
