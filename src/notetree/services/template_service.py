"""Application of schema templates to note bodies."""

import logging
from typing import Optional

from notetree.exceptions import TemplateNotFoundError
from notetree.models.nodes import NoteNode
from notetree.models.records import SchemaTemplate, TemplateKind
from notetree.models.tree import NodeTree
from notetree.observability import traced
from notetree.services.schema_matcher import SchemaMatcher

logger = logging.getLogger(__name__)


class TemplateApplier:
    """Copies template content onto notes.

    Only note templates are handled: the template id is the path of another
    note whose body becomes the target note's body.
    """

    def __init__(self, notes: NodeTree[NoteNode], matcher: Optional[SchemaMatcher] = None):
        self.notes = notes
        self.matcher = matcher

    @traced("apply_template")
    def apply_template(self, template: SchemaTemplate, note: NoteNode) -> bool:
        """Apply ``template`` to ``note``.

        Returns:
            True when the body was replaced, False for template kinds that
            are not handled.

        Raises:
            TemplateNotFoundError: No note exists at the template path.
        """
        if template.type != TemplateKind.NOTE.value:
            logger.debug("Skipping template %s of kind %s", template.id, template.type)
            return False

        source = self.notes.find_by_fname(template.id)
        if source is None:
            raise TemplateNotFoundError(template.id, note_fname=note.fname)

        note.body = source.body
        logger.debug("Applied template %s to %s", template.id, note.fname)
        return True

    def match_and_apply_template(self, note: NoteNode) -> bool:
        """Match ``note`` and apply its schema's template if it declares one."""
        if self.matcher is None:
            return False
        schema = self.matcher.match(note)
        if schema.template is None:
            return False
        return self.apply_template(schema.template, note)
