# setup.py
from setuptools import setup, find_packages

setup(
    name="hugin",
    version="0.1.0",
    description="Краулер и поисковый движок Hugin для оверлейных сетей",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"hugin": ["templates/*.j2"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "lxml>=4.9",
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
        "playwright>=1.40",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "hugin=hugin.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
