"""
Core metadata synthesis: resolvers, assembler, emitter and engine.
"""
