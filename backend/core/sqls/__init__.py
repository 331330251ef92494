"""
SQL statements shared by the repositories
"""
