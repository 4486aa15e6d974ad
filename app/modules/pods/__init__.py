"""
Módulo de Pods - Estructura jerárquica pod → cara → bin

- router.py: Endpoints FastAPI
- service.py: Alta, edición estructural y validación del documento
- repository.py: Acceso a datos (carga de pod completa en una consulta)
- schemas.py: Modelos Pydantic de request/response
"""
