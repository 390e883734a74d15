"""Contratos (Protocol) entre el Core y los adaptadores.

Por qué:
- Los servicios piden "algo que complete prompts" o "algo que busque fotos",
  no un SDK concreto; `LLMClient` y los proveedores de stock los cumplen.
"""
