from setuptools import setup, find_packages

# Project metadata lives in pyproject.toml; this file only pins package
# discovery and ships the default YAML alongside the code.
setup(
    packages=find_packages(include=["dicomqr", "dicomqr.*"]),
    package_data={"dicomqr.config": ["config.yaml"]},
    include_package_data=True,
)
