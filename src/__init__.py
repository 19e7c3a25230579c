"""
League Table Predictor - Core Package

This package contains the core modules for:
- Prediction scoring and history reconciliation (src.scoring)
- Standings ingestion (src.ingestion)
- Prediction and history stores (src.storage)
- Shared configuration, errors and utilities
"""

from src.config import *
