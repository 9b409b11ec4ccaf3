"""Chat text -> Intent (parser.py), and Thai deadline phrases (deadline.py)."""
