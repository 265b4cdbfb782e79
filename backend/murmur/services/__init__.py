# Services package init
"""
Murmur Backend — Services Layer
================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Stateless service objects; every call receives the request's
       AsyncSession, applies the rules, and flushes. The request's
       session dependency commits or rolls back as a unit.

Service Inventory:
    - IdentityService:      register, authenticate, profiles, username search
    - RelationshipService:  follow/unfollow and the connectivity predicate
    - PostService:          posts, likes, comments (gated by connectivity)
    - NoteService:          private per-user notes
    - UserResolver:         ids → {id, username, avatar} for responses
    - store.py:             timeout / driver-error guard and conflict retry

Dependencies between services are passed to the constructor
(PostService(relationship_service)), so tests can build them with their own
collaborators.
"""
