#!/usr/bin/env python3
"""
Packing Slip Generator - package setup.

Installs the flat modules and the box-size catalog. Run the operator UI with:
    streamlit run streamlit_app.py
"""
from setuptools import setup

setup(
    name="packing-slip-generator",
    version="1.0.0",
    description="Packing slip and picklist PDFs from item fulfillment line records",
    python_requires=">=3.8",
    py_modules=[
        "config",
        "order_models",
        "order_processor",
        "shipping_zones",
        "picklist",
        "pdf_assets",
        "pdf_layout",
        "printed_store",
        "streamlit_app",
    ],
    data_files=[("", ["order-config.json"])],
    install_requires=[
        "streamlit>=1.28.0",
        "pandas>=2.0.0",
        "pillow>=10.0.0",
        "PyMuPDF>=1.23.0",
        "openpyxl>=3.1.0",
        "python-dateutil>=2.8.0",
        "requests>=2.31.0",
        "python-barcode>=0.15.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
