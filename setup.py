from setuptools import setup, find_packages

setup(
    name="stepguard",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"stepguard": ["*.lark"]},
    install_requires=[
        "lark>=1.1",
        "pydantic>=2.0",
        "loguru>=0.7",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "stepguard=stepguard.cli:main",
        ],
    },
    python_requires=">=3.8",
)
