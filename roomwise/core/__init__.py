"""Core infrastructure: settings, logging, database, auth and errors"""
