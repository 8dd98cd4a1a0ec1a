"""utilities for chainsage"""
