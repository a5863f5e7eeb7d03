"""
Application layer: services orchestrating core and boundary components.
"""
