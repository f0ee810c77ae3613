"""Machine learning module for ProductRec.

This module contains the dataset loader, key encoders, the matrix
factorization trainer, the evaluator and the prediction engine used to
score how well two products combine.
"""
