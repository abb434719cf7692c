"""
channels — Notification channel construction and provisioning.

Sub-modules:
    models                — data structures shared across the package
    url_normalizer        — canonical alternate console URL
    templates             — subject / body / display name / description
    settings_resolver     — fresh vs. cloned delivery settings
    assembler             — settings + flags → ChannelDefinition
    platform              — management-platform collaborator (simulation, http)
    provisioning_service  — exclusivity, resolution, assembly, persistence
"""
