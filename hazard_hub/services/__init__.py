"""
Services layer - business logic goes here.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Collaborators are passed in at construction, never imported as globals
- Role checks belong to the Authorization Gate, not to the services it guards
"""
