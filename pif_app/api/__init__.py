"""
API Module - REST endpoints for the PIF Submission Pipeline.
"""
