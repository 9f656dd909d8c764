"""Services subpackage - rule stores and the pricing façade."""
