from setuptools import find_packages, setup

setup(
    name="deckstate",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "sqlalchemy>=2",
        "python-dotenv",
        "pyyaml",
        "cryptography",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    python_requires=">=3.11",
    include_package_data=True,
    description="Slide document state, undo/redo history and versioning engine for a deck editor",
)
