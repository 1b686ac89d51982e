"""
LLM stream layer: backend adapters and the generation orchestrator.
"""
