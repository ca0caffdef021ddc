"""Certificate business logic.

The route validates the raw request body with
``validation_service.validate_certificate_request`` and passes the resulting
normalised ``CertificateRequest`` to ``certificates_service.issue_certificate``,
which renders the PDF and JPEG, stores the record through the repository
layer and mails the result. Nothing in this package knows about HTTP;
failures surface as domain exceptions that the route maps to status codes.
"""
