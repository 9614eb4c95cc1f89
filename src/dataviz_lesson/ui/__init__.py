"""
Interactive display surface.

- app: Streamlit page that walks through the lesson step by step
"""
