"""
Review Matcher API - HTTP front for review assignment.

Provides a FastAPI backend exposing the assignment matcher and the bulk
queue pass to the React front end.
"""
