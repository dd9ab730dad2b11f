from setuptools import setup, find_packages

setup(
    name="dailyreminder",
    version="0.1.0",
    packages=find_packages(include=["dailyreminder", "dailyreminder.*"]),
    python_requires=">=3.10",
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "prometheus-client",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
