from setuptools import setup, find_packages

setup(
    name="fx-curve-pricer",
    version="0.3.0",
    description="Rate-curve bootstrapping and closed-form FX option pricing",
    author="Leo",
    author_email="tabbakhianhatef@gmail.com",
    packages=find_packages(exclude=["tests"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0",
        "scipy>=1.11",
        "matplotlib>=3.7",
        "plotly>=5.15",
        "pydantic>=2.0",
        "python-dateutil>=2.8",
    ],
    extras_require={
        "dev": ["pytest>=7.0", "black", "flake8"],
    },
    entry_points={
        "console_scripts": [
            "fx-core=main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Topic :: Office/Business :: Financial",
        "Topic :: Scientific/Engineering",
    ],
)
