"""
hfcgen: high-frequency check generator for SurveyCTO XLSForms

Reads the "survey" and "choices" sheets of an XLSForm into an instrument
model (questions, value lists, repeat groups, datasets) and derives the
VariableCatalog consumed by the check-script backends.

ARCHITECTURAL GUARANTEE:
------------------------
The model and analysis layers contain ZERO knowledge of:
    - Stata syntax
    - Check templates
    - Output files

All script generation happens in hfcgen.backends.
"""

__version__ = "0.1.0"
