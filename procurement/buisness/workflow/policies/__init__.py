"""
Business policies for the procurement workflow.

Policies are stateless rule checks applied before any mutation.
"""

from procurement.buisness.workflow.policies.ownership import RequestOwnershipPolicy
from procurement.buisness.workflow.policies.site_assignment import SiteAssignmentPolicy
from procurement.buisness.workflow.policies.payload_validation import PayloadValidationPolicy

__all__ = [
    'RequestOwnershipPolicy',
    'SiteAssignmentPolicy',
    'PayloadValidationPolicy',
]
