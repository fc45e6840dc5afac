from setuptools import find_packages, setup

setup(
    name="hookrelay",
    version="0.1.0",
    description="In-process extension-point dispatcher with prioritized, pattern and per-object hooks",
    packages=find_packages(include=["hookrelay", "hookrelay.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["hookrelay=hookrelay.cli:main"],
    },
)
