"""ProductRec: co-purchase product recommendation system.

This package trains a one-class matrix factorization model on pairs of
products that were bought together and uses it to score and rank product
combinations.

Modules:
    api: FastAPI application exposing the prediction service
    recommender: data loading, encoding, training, evaluation and prediction
"""

__version__ = "0.1.0"
