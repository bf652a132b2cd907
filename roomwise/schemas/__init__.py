"""Pydantic schemas for requests, responses and provider payloads"""
