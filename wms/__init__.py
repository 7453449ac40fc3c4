"""WMS output documents."""
