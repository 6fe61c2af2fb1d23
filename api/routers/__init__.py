"""API Routers Package"""
from . import admin, auth, campaigns, categories, charity, donations, feedback, files, notifications, reviews, users

__all__ = [
    'admin',
    'auth',
    'campaigns',
    'categories',
    'charity',
    'donations',
    'feedback',
    'files',
    'notifications',
    'reviews',
    'users',
]
