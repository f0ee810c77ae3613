"""FastAPI application module for ProductRec.

This module contains the FastAPI application and the endpoints that expose
trained co-purchase models for scoring and ranking product combinations.
"""
