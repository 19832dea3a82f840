"""Domain types and error taxonomy"""
