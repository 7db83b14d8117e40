"""
ChefAI generation backend: recipe and meal-plan generation flows,
spoken cooking instructions and the guided cooking session.
"""
__version__ = "1.0.0"
