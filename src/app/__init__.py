"""
Application Composition Module
"""
