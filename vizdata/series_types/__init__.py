"""
Series type definitions sub-package for vizdata.

Contains YAML files that declare, for each known series type, the
point-array-map used to read positionally-encoded points. The loader
module (series_registry.py in the parent package) reads these files at
runtime.
"""
