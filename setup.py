# setup.py

from setuptools import setup, find_packages
from pathlib import Path

readme = Path(__file__).parent / "README.md"
long_description = readme.read_text() if readme.exists() else ""

setup(
    name="spendos-treasury",
    version="1.0.0",
    description="SpendOS treasury backend: Arc Treasury contract mirror and Circle Gateway execution",
    long_description=long_description,
    long_description_content_type="text/markdown",

    packages=find_packages(exclude=["tests", "tests.*", "migrations", "migrations.*"]),

    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
        "redis>=5.0.0",
        "pydantic>=2.0.0",
        "httpx>=0.27.0",
        "PyJWT>=2.8.0",
        "web3>=7.0.0",
        "eth-account>=0.13.0",
        "APScheduler>=3.10,<4",
        "alembic>=1.13.0",
    ],

    extras_require={
        "dev": ["pytest", "pytest-asyncio>=0.23", "aiosqlite", "black", "mypy"]
    },

    python_requires=">=3.10",

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ]
)
