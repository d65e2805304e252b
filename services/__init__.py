"""
services package
Anbindungen an externe Dienste (Ticketing-Token, Showtimes-Feed).
Integrations with external services (ticketing tokens, showtimes feed).
"""
