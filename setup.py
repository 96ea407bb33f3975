from setuptools import find_namespace_packages, setup

setup(
    name="macroview",
    version="0.1.0",
    description="Compiles macro-annotated HTML templates into Python view modules",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["macroview", "macroview.*"]),
    install_requires=[
        "jinja2>=3.0",
        "rich>=13.0",
        "rich-click>=1.7",
        "watchfiles>=0.21",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "click>=8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "macroview=macroview.cli.main:cli",
        ],
    },
    zip_safe=False,
)
