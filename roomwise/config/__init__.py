"""Static configuration data"""
