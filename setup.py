from setuptools import setup

setup(
    name="icenet-ops",
    version="0.1.0",
    description="Operational orchestration of IceNet sea ice forecasts: data refresh, prediction and asset production",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    license="MIT",

    # module files in src/, not a package directory
    py_modules=[
        "sea_ice_ops_errors",
        "sea_ice_ops_region",
        "sea_ice_ops_config",
        "sea_ice_ops_tasks",
        "sea_ice_ops_observations",
        "sea_ice_ops_assets",
        "sea_ice_ops_toolbox",
        "sea_ice_ops_runner",
        "sea_ice_ops_cli",
    ],
    package_dir={"": "src"},
    include_package_data=True,

    install_requires=[
        "numpy",
        "pandas",
        "xarray",
        "netCDF4",
        "tqdm",
    ],

    extras_require={
        "test": [
            "pytest",
        ],
        "docs": [
            "sphinx>=7",
            "sphinx-rtd-theme",
            "myst-parser",
        ],
    },

    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Atmospheric Science",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
