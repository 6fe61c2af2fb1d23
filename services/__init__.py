"""Service layer: business rules over the database modules"""
