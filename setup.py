"""Setup configuration for ShiggyBot Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="shiggybot",
    version="0.1.0",
    description="A Discord community bot with moderation, plugin search and link previews",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiohttp>=3.9",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "shiggybot=shiggybot.main:main",
        ],
    },
)
