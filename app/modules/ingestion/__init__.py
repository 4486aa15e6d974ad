"""
Módulo de Ingesta - Reconciliación del almacén de items desde entradas masivas

- normalizers.py: limpieza de valores y validación de claves de ubicación
- service.py: reconciliación fila a fila y lectura de CSV con pandas
- router.py: Endpoints FastAPI (JSON y archivo CSV)
"""
