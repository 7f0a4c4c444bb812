"""
Volna music bot package
"""
