from setuptools import setup, find_packages

setup(
    name="permaculture-planner",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        "permaculture_planner": ["data/*.yaml"],
        "permaculture_planner.client": ["*.yaml"],
    },
    install_requires=[
        "fastapi",
        "pydantic>=2",
        "uvicorn",
        "sqlalchemy[asyncio]",
        "aiosqlite",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt==4.0.1",
        "httpx",
        "openai",
        "anthropic",
        "pyyaml",
        "python-dotenv",
        "numpy",
        "pdfplumber",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
