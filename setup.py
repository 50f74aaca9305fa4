from setuptools import setup


setup(
    name="spendsheet",
    version="0.3.0",
    description="Identify, normalize, and classify Korean card, bank, and payroll spreadsheet exports",
    packages=["spendsheet"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
        "test": ["pytest", "numpy"],
    },
    entry_points={
        "console_scripts": [
            "spendsheet=spendsheet.cli:main",
        ]
    },
)
