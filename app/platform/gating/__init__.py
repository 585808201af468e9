"""
Consent-gated script loading
Third-party scripts are emitted inert and only activated after consent
"""
