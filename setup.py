"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/arduino/libcheck"
KEYWORDS = "embedded arduino arduino-cli library compatibility compiler testing"
HERE = os.path.dirname(os.path.abspath(__file__))


def get_version() -> str:
    """Read __version__ from the package without importing it."""
    with open(os.path.join(HERE, "src", "libcheck", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=", 1)[1].strip().strip("\"'")
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="libcheck",
        version=get_version(),
        description="Compile Arduino libraries on multiple boards and report their compatibility",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages("src"),
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["libcheck=libcheck.cli:main"]},
        include_package_data=True,
    )
