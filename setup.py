"""
/setup.py

Date: October, 2026
"""

import setuptools

with open("requirements.txt", "r", encoding="utf-8") as file:
    requirements = file.read().splitlines()

setuptools.setup(
    name="bayes_report",
    version="0.1.0",
    description="Reporting helpers for Bayesian regression fits",
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src", exclude=["*.tests"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": [
            "bayes_report = bayes_report.cli:main",
        ]
    },
)
