from setuptools import setup, find_packages

setup(
    name="ship_health",
    version="0.1.0",
    description="Health assessment and fault diagnosis for shipboard equipment",
    author="Ship Health Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "ship-health=ship_health.cli:main",
        ]
    },
    python_requires=">=3.8",
)
