from .blend import blend_arrays, blend_pixels, composite_stack, flatten_layers, flatten_rows

__all__ = ["blend_arrays", "blend_pixels", "composite_stack", "flatten_layers", "flatten_rows"]
