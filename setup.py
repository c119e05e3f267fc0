"""Setup script for PETRA pseudo-CT package."""

from setuptools import setup, find_packages

setup(
    name="petra-pseudoct",
    version="0.1.0",
    description="PETRA MR to pseudo-CT conversion for transcranial ultrasound planning",
    packages=find_packages(include=["pseudoct", "pseudoct.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "nibabel>=5.0",
        "scikit-image>=0.20",
        "tqdm>=4.65",
        "pyyaml>=6.0",
        "matplotlib>=3.7",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
