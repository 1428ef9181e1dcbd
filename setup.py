import setuptools
from setuptools import setup

setup(
    name="mwa-beam",
    version="0.1.0",
    description="MWA tile beam responses from the FEE and analytic models",
    packages=setuptools.find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=["numpy", "scipy", "h5py"],
    extras_require={
        "gpu": ["cupy"],
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 2 - Pre-Alpha",
        "Environment :: Console",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: BSD License",
        "Natural Language :: English",
        "Programming Language :: Python :: 3"
    ],
    author="The MWA Beam Library Developers",
    license="BSD"
)
