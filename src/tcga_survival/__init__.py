"""
Source code for TCGA expression and survival analysis.

This package contains modules for loading RNA-seq counts and clinical
records, normalizing expression against control samples, and relating
expression to patient survival.
"""

__version__ = "1.0.0"
