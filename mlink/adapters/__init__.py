"""Server framework bindings for ActionEndpoint."""
