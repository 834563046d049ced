"""Floor plan output.

- floorplan: PNG rendering with matplotlib
- mesh: world-space triangle buffers and polygon records
- ifc: IFC 2x3 export with one IfcSpace per element
"""
