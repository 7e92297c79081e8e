"""Brave Call services.

Turn pipeline, leaf-first:
- safety_service: keyword pre-filter and model safety verdict (fails closed)
- routing_service: picks the specialist agent (fails open)
- validation_service: last-chance check of the drafted reply (fails open)
- escalation_service: tier 0-3 ladder and tier-3 parent SMS
- companion_service: orchestrator, repositories and HTTP surface
"""
