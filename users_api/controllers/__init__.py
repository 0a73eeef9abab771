"""
Request controllers for the users-api service.

Controllers are framework-agnostic: they accept request data and return a
``(data, status, headers)`` tuple. :mod:`users_api.routes.api` is responsible
for pulling data off of the Flask request and building the response.
"""
