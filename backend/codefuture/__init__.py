"""Application package for the codefuture learning-platform backend.

This package exposes the service, repository and model modules used by
the FastAPI application built in `codefuture.main`. Individual modules
contain the concrete implementations and documentation.
"""
