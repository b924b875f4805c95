from setuptools import setup, find_packages
import os

install_requires = ["lark>=1.1", "pydantic>=2", "requests"]

# Define optional dependencies for development
extras_require = {"dev": ["pytest"]}

setup(
    name="tsloader",
    version="1.0.0",
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "tsl = tsloader.cli:main",
        ],
    },
    include_package_data=True,
    package_data={"tsloader.compiler": ["*.lark"]},
    description="Loads TypeScript sources as compiled JavaScript, with pluggable compilers and caches.",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
)
