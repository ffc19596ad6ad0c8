"""
Feature modules, in load order. Each package exposes a ModuleDescriptor.
"""

from boothhub.modules import costing, monitoring, payments, policies, proposals, sales

MODULES = (
    sales.descriptor,
    payments.descriptor,
    monitoring.descriptor,
    costing.descriptor,
    policies.descriptor,
    proposals.descriptor,
)
