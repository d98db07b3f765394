"""
Core business logic for the audit file sync.

This module is framework-agnostic - it doesn't import FastAPI, httpx,
boto3 or any infrastructure concerns. This separation means we can test
the sync rules in isolation and swap clients if needed.
"""
