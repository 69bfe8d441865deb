from setuptools import setup, find_packages

setup(
    name="causal-set",
    version="0.1.0",
    description="Add/remove set CRDT with vector clocks and causal tombstone collection",
    author="adamfilli",
    packages=find_packages(include=["causalset", "causalset.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
