from setuptools import find_packages, setup

setup(
    name="jaxelim",
    version="0.0",
    description="Variable elimination for linear factor graphs in Jax",
    url="http://github.com/brentyi/jaxelim",
    author="brentyi",
    author_email="brentyi@berkeley.edu",
    license="BSD",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"jaxelim": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=[
        "jax>=0.4.16",
        "jaxlib",
        "jax_dataclasses>=1.6.0",
        "loguru",
        "numpy",
        "overrides",
        "termcolor",
    ],
    extras_require={
        "testing": [
            "pytest",
            "pytest-cov",
        ],
        "type-checking": [
            "mypy",
            "types-termcolor",
        ],
    },
)
