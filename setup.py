from setuptools import setup, find_packages

setup(
    name="nrepleval",
    version="0.1.0",
    description="Command line client for evaluating code on a running nREPL server",
    license="MIT",
    packages=find_packages(include=["nrepleval", "nrepleval.*"]),
    install_requires=[
        "typer>=0.9.0",
        "rich>=13.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "nrepleval=nrepleval.main:nrepleval",
        ],
    },
    python_requires=">=3.10",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
