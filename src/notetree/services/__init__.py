"""Services that build, match and edit note hierarchies."""

from notetree.services.hierarchy_service import HierarchyService, TemplateReport
from notetree.services.schema_matcher import SchemaMatcher
from notetree.services.stub_service import StubSynthesizer, add_back_link
from notetree.services.template_service import TemplateApplier
from notetree.services.tree_builder import TreeBuilder

__all__ = [
    "HierarchyService",
    "SchemaMatcher",
    "StubSynthesizer",
    "TemplateApplier",
    "TemplateReport",
    "TreeBuilder",
    "add_back_link",
]
