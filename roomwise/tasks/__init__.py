"""Celery task entry points"""
