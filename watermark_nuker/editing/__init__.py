"""Remote image-editing package.

Module split:
    - `provider_config`: environment-driven model, endpoint and credential config.
    - `service`: directive + client call for one watermark removal.
    - `client`: Gemini HTTP transport and response parsing.
"""
