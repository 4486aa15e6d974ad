"""
Módulo de Sincronización - Proyección de items sobre la estructura de pods

- service.py: sync por pod con reintento por versión, sync global y chequeo de integridad
- schemas.py: resultados de sincronización y reporte de integridad
- router.py: Endpoints FastAPI
"""
