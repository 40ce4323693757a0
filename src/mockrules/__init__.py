"""
MockRules - rule-driven HTTP mock server

Serves one of several configured responses per route, chosen by evaluating
response rules against the incoming request's body, query string, route
parameters and headers.
"""

__version__ = '1.0.0'
