"""
Field mapping between local documents and Stripe resources.
"""

from typing import Any, Dict, Iterable

from ..models.config import FieldMapping


class FieldMapper:
    """
    Translates between local document fields and Stripe properties.

    Both directions read only the declared mappings, so undeclared fields never
    cross the boundary. A field missing from the source is omitted from the
    result rather than set to None. Values are passed through unchanged.
    """

    @staticmethod
    def to_remote(local_doc: Dict[str, Any], mappings: Iterable[FieldMapping]) -> Dict[str, Any]:
        """
        Build a Stripe payload from a local document.

        Args:
            local_doc: Local document data
            mappings: Field mappings of the collection's sync rule

        Returns:
            Payload containing only the mapped Stripe properties
        """
        payload = {}
        for mapping in mappings:
            if mapping.field_path in local_doc:
                payload[mapping.stripe_property] = local_doc[mapping.field_path]
        return payload

    @staticmethod
    def to_local(remote_payload: Dict[str, Any], mappings: Iterable[FieldMapping]) -> Dict[str, Any]:
        """
        Build a partial local document from a Stripe object.

        Args:
            remote_payload: Stripe object (the event's data.object)
            mappings: Field mappings of the collection's sync rule

        Returns:
            Partial document containing only the mapped local fields
        """
        data = {}
        for mapping in mappings:
            if mapping.stripe_property in remote_payload:
                data[mapping.field_path] = remote_payload[mapping.stripe_property]
        return data
