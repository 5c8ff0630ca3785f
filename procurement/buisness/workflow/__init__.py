"""
Request workflow business layer.

Main entry point: RequestContext (domain facade)

- RequestContext: Domain facade / aggregate controller for a request group
- RequestManager: Draft, approval and item-level request operations
- RequestStateMachine: The single action -> (roles, from-states, to-state) table
- Policies: Ownership, site assignment and payload rules
- WorkflowNarrator / AuditTrail: Append-only audit notes
"""
