"""Configuration for the descent package."""

from setuptools import setup, find_packages


setup(
    name="descent",
    version="0.1.0",
    packages=find_packages(exclude=["scripts"]),
    install_requires=[
        "numpy",
    ],
    python_requires=">=3.10",
    zip_safe=False,
)
