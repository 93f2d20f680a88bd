"""
Parsers sub-package for vizdata.

Parsers turn external data into a ``DataTable``.

Design: Strategy Pattern
- base.py defines the DataParser ABC and the table <-> columns and
  table <-> series-options conversions shared by every parser.
- array.py implements ArrayParser for lists of rows of raw values.
- dataframe.py implements PandasParser for ``pandas.DataFrame`` input,
  plus ``table_to_dataframe`` for the way back.
"""
