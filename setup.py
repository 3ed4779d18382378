from setuptools import setup, find_packages

setup(
    name="amortization_engine",
    version="0.1.0",
    description="French-method bond amortization, indicator and compliance engine",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.9",
)
