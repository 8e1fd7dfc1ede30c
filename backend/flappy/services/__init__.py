"""Domain services: accounts and the gameplay verification pipeline.

Routes and socket handlers import from here; nothing in this package
builds HTTP responses.
"""
