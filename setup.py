import os
import re

from setuptools import find_packages, setup

# get the path of the current file
script_dir = os.path.dirname(os.path.abspath(__file__))


# read the version from sqlpushdown/__init__.py, which is `__version__ = "0.1.0"`
def get_version():
    init_file = os.path.join(script_dir, "sqlpushdown", "__init__.py")
    with open(init_file, "r") as f:
        match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.M)
    if match is None:
        raise RuntimeError("Unable to find __version__ in sqlpushdown/__init__.py")
    return match.group(1)


if __name__ == "__main__":
    setup(
        name="sqlpushdown",
        version=get_version(),
        description="Compile relational plans into nested SQL pushed down to a remote store",
        packages=find_packages(include=["sqlpushdown", "sqlpushdown.*"]),
        install_requires=[
            "pandas>=2.0.0",
            "chdb>=2.0.0",
        ],
        extras_require={
            "test": ["pytest>=7.0"],
        },
        exclude_package_data={'': ['*.pyc']},
        python_requires='>=3.8',
        test_suite="sqlpushdown.tests",
        zip_safe=False,
    )
