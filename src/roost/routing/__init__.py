"""Routing — verb and path registration compiled onto the event bus.

Routes are compiled into ``"<VERB> <PATH>"`` regex listeners at
registration time; dispatch is an ordinary bus emission.
"""
