from pathlib import Path

from setuptools import setup, find_packages

setup(
    name="mercer",
    version="0.0.1",
    description="A composable algebra of Mercer kernels with Representer Theorem accumulation in JAX.",
    long_description=Path("README.md").read_text(),
    long_description_content_type="text/markdown",
    license="MIT",
    python_requires=">=3.12",
    install_requires=["jax", "scipy>=1.13"],
    extras_require={"test": ["pytest"]},
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=False
)
