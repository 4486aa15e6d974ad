"""
Módulo Resolver - Ubicación de items en la estructura de pods

- service.py: estrategia join, estrategia rápida por pod y fallback
- schemas.py: items anotados con su ubicación
- router.py: consulta de items de un pod

Los servicios se importan desde sus submódulos (el módulo de items depende
del resolver y viceversa).
"""
