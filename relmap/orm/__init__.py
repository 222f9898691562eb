"""
This orm module connects RelMap descriptors to a SQL database through SQLAlchemy Core.
It contains schema generation, the mapping session, repositories, Unit of Work patterns,
and database connection utilities.
"""
