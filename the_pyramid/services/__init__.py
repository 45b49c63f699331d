"""Engine actions that validate and then mutate the node store.

Each module validates fully before it mutates, and reports refusals as
result values rather than exceptions.
"""
