from setuptools import setup, find_packages

setup(
    name="wayex_ledger",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "beancount",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-dependency",
        ],
    },
    author="Price Hatfield",
    description="A tool for reconciling a crypto exchange export against a beancount ledger",
    python_requires=">=3.8",
)
