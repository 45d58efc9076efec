"""HTTP / WebSocket surface for the inference pipeline."""
