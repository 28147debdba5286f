"""
File repository API.

Stores uploaded files in a single directory under identifier-encoded names
and serves listing, download and batch deletion over HTTP.
"""
