"""
Grade normalization, eco estimate, Nutri-Score and model confidence bands.
"""
