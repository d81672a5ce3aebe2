"""Pure domain rules: validation, state machines and the custody chain.

Every function here takes a record and returns a new record; none of them
touch storage.
"""
