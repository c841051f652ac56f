"""Binary model-container decoders."""
