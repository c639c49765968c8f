"""Serialization of datasets to the JSON file format and the workbook layout."""
