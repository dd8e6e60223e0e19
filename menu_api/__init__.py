"""
                Menu Ordering API

Backend for a restaurant menu ordering platform: account registration
and login with user/admin roles, plus a searchable, filterable,
paginated menu catalog stored in a document database.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
