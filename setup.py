from setuptools import setup


setup(
    name="sales-doctor",
    version="0.1.0",
    description="Turns messy retail sales-register exports into transactions and dashboard-ready analytics",
    packages=["sales_doctor"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sales-doctor=sales_doctor.cli:main",
        ]
    },
)
