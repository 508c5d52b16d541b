"""
rto_validation — LLM-backed compliance validation for RTO assessment material.

Assessment documents and learner guides are checked against the structured
requirements of a unit of competency. Requirements that are not fully met
get a generated remediation task ("SMART question / task") and benchmark.

Module map
----------
  config.py                       Settings (pydantic-settings) + provider selection.
  errors.py                       Exception hierarchy and error payloads.
  models/                         Enums and pydantic schemas.
  providers/                      Gemini File Search / Azure OpenAI clients,
                                  Azure Document Intelligence, n8n trigger.
  services/response_parser.py     JSON extraction, field aliases, status mapping.
  services/prompt_service.py      Template lookup + placeholder rendering.
  services/content_resolver.py    Document text context for one requirement.
  agents/                         Phase 1 validator, Phase 2 remediation generator.
  orchestration/runner.py         Per-unit batch orchestration.
  persistence/                    Store protocols, in-memory + MongoDB backends.
  api/                            FastAPI surface.
"""

__version__ = "0.1.0"
