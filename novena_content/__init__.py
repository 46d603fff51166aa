"""
Novena content: data types, JSON loading, day expansion and script assembly.
"""
