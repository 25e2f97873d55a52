"""
Task cells: status colour codec, cell decode/encode, merge, history reads and
the update service.
"""
