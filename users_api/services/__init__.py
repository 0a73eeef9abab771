"""
External services used by the users-api application.

:mod:`.users` is the credential store: it owns user records, password hashes,
uniqueness of usernames and e-mail addresses, and security stamps.
:mod:`.mail` delivers account notifications over SMTP.
"""
