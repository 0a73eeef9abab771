"""
users-api: a minimal user account service.

The service provides a JSON API for account registration, e-mail
confirmation, and password recovery, and issues bearer tokens to users who
log in.

Accounts move through a small state machine. A new account is unconfirmed;
following the link in the confirmation e-mail confirms it. A confirmed user
who has forgotten their password can ask for a reset link, and use it to set
a new password. The codes in those links are stateless signed tokens bound to
the user's security stamp (see :mod:`users_api.tokens`), so any change to the
account invalidates every code that was issued before it.

Components
----------
:mod:`users_api.services.users`
    Credential store.
:mod:`users_api.tokens`
    Purpose-scoped account tokens.
:mod:`users_api.lifecycle`
    Orchestrates registration, confirmation and recovery.
:mod:`users_api.controllers`, :mod:`users_api.routes`
    HTTP interface.
:mod:`users_api.auth`
    Bearer tokens, and the authenticated session on each request.
"""
