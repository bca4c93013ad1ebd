"""Game domain services: the letter-catch engine, session storage and the server clock.

The engine (``letter_catch``) is pure Python and knows nothing about Flask.
HTTP routes and socket handlers go through ``sessions.apply`` so that every
mutation is loaded, persisted and broadcast the same way.
"""
