"""Bundled sample corpus, used by the sample import and the demo provider."""

SAMPLE_DATA: list[dict] = [
    {
        "req_id": "R-001",
        "source_doc": "Doc1",
        "section": "1.0 Introduction: Source of Truth (SoT)",
        "category": "Architecture",
        "subcategory": "System-of-Record",
        "criticality": "MUST",
        "text_original": (
            "Source of Truth (SoT): the central relational database (Postgres) "
            "holds all canonical metadata, versioned documents, extracted "
            "artifacts and their lineage as the authoritative source."
        ),
        "ctonote": "The database is the only authoritative source for canonical metadata and artifacts.",
    },
    {
        "req_id": "R-002",
        "source_doc": "Doc1",
        "section": "2.0 Architectural Principles: Auditability",
        "category": "Governance",
        "subcategory": "Auditability",
        "criticality": "MUST",
        "text_original": (
            "Every piece of information, every extracted claim and every "
            "generated artifact must be traceable to its origin, including "
            "the exact source and the document version (sha256)."
        ),
        "ctonote": "Lineage fields must be immutable.",
    },
    {
        "req_id": "R-003",
        "source_doc": "Doc2",
        "section": "3.5 API Standards",
        "category": "Development",
        "subcategory": "API Design",
        "criticality": "SHOULD",
        "text_original": (
            "All external interfaces should follow the RESTful standard and "
            "be specified with OpenAPI 3.0."
        ),
        "ctonote": "gRPC is allowed for internal communication.",
    },
    {
        "req_id": "R-004",
        "source_doc": "Doc1",
        "section": "4.1 Security",
        "category": "Security",
        "subcategory": "Encryption",
        "criticality": "MUST",
        "text_original": "Data at rest must be encrypted with AES-256.",
        "ctonote": "Yearly KMS key rotation.",
    },
    {
        "req_id": "R-005",
        "source_doc": "Doc3",
        "section": "2.2 Performance",
        "category": "Architecture",
        "subcategory": "Latency",
        "criticality": "SHOULD",
        "text_original": "API endpoint response time should be below 200ms at the 99th percentile.",
        "ctonote": "Does not apply to batch processing.",
    },
]
