"""
Travel desk settlement - services
Amount resolution, allocation engine, open-item queries and ledgers
"""
