from .document_schemas import (
    DocumentAuth, RequestMetadata, NextSigner, AccessAuthOptions,
    RecipientCreate, FieldCreate, SignFieldRequest, CompleteDocumentRequest,
    SendDocumentRequest, RecipientResponse, FieldResponse, EnvelopeResponse,
    AuditLogResponse, SigningViewResponse, ReplacePdfResponse,
    map_envelope_to_webhook_payload
)

__all__ = [
    'DocumentAuth', 'RequestMetadata', 'NextSigner', 'AccessAuthOptions',
    'RecipientCreate', 'FieldCreate', 'SignFieldRequest', 'CompleteDocumentRequest',
    'SendDocumentRequest', 'RecipientResponse', 'FieldResponse', 'EnvelopeResponse',
    'AuditLogResponse', 'SigningViewResponse', 'ReplacePdfResponse',
    'map_envelope_to_webhook_payload'
]
