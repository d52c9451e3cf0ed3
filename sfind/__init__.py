"""
sfind

Quickly find entities in Salesforce, and show the matching account, assets,
opportunities and contacts.
"""
__version__ = '0.1.0'
