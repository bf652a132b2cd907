"""Background job workers"""
