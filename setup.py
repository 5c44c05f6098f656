from pathlib import Path

from setuptools import find_packages, setup

this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="automl-engine",
    version="0.1.0",
    description="AutoML job orchestration engine with a FastAPI interface.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    include_package_data=True,
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["run_fastapi"],
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "scikit-learn>=1.4.0,<2.0.0",
        "optuna>=3.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "dev": ["pytest", "pytest-asyncio>=0.23.0", "httpx>=0.27.0"],
        "parquet": ["pyarrow>=14.0.0"],
    },
    entry_points={"console_scripts": ["automl-engine=run_fastapi:main"]},
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
)
