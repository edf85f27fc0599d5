from os import path

from setuptools import setup

this_dir = path.abspath(path.dirname(__file__))
with open(path.join(this_dir, "README.md")) as f:
    long_description = f.read()

setup(
    name="FastUoW",
    description="FastUoW - transactional unit of work for async SQLAlchemy",
    long_description=long_description,
    long_description_content_type="text/markdown",
    version="0.1",
    license="MIT",
    author="Joseph Kim, Benzamin Yoon",
    author_email="cloudeyes@gmail.com",
    packages=["fastuow", "fastuow.core", "fastuow.test"],
    package_data={
        "fastuow": ["py.typed"],
        "fastuow.core": ["py.typed"],
        "fastuow.test": ["py.typed"],
    },
    keywords=["fastuow", "unit of work", "sqlalchemy", "asyncio"],
    python_requires=">=3.9",
    install_requires=[
        "sqlalchemy[asyncio]>=2.0",
        "uvicorn",
        "aiosqlite",
    ],
    extras_require={
        "postgres": ["asyncpg"],
        "test": ["pytest", "pytest-asyncio>=0.21"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
    ],
)
