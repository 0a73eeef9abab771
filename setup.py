"""Install the users-api package."""

from setuptools import setup, find_packages

setup(
    name='users-api',
    version='0.1.0',
    packages=find_packages(exclude=['*.tests', '*.tests.*']),
    include_package_data=True,
    install_requires=[
        "flask",
        "flask-sqlalchemy",
        "sqlalchemy",
        "werkzeug",
        "markupsafe",
        "wtforms",
        "email-validator",
        "python-dateutil",
        "pytz",
        "pyjwt",
        "retry",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
        ]
    },
    zip_safe=False
)
