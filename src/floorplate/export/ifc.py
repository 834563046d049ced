"""IFC export via ifcopenshell.

Writes a generated floor plan as IFC 2x3: one storey holding an IfcSpace
per unit, core, corridor and filler, each an extruded outline. The
footprint transform is carried by the building placement, so spaces keep
their building-local coordinates.

GlobalIds are derived from element ids, so exporting the same plan twice
yields the same ids.
"""

from __future__ import annotations

import math
from pathlib import Path

import ifcopenshell

from floorplate.models.floorplan import FloorPlan
from floorplate.models.geometry import Point2D, signed_area
from floorplate.models.ifc_id import stable_ifc_id


class IFCExporter:
    """Export a FloorPlan to an IFC file."""

    def __init__(self, plan: FloorPlan, name: str = "Floorplate"):
        self.plan = plan
        self.name = name
        self.file = ifcopenshell.file(schema="IFC2X3")
        self._setup_header()
        self._context: ifcopenshell.entity_instance | None = None
        self._body_context: ifcopenshell.entity_instance | None = None
        self._building_placement: ifcopenshell.entity_instance | None = None

    def _guid(self, *parts: str) -> str:
        return stable_ifc_id(self.name, self.plan.strategy.value, *parts)

    def _setup_header(self) -> None:
        """Set IFC file header metadata."""
        file_name = self.file.header.file_name
        file_name.name = f"{self.name}.ifc"
        file_name.author = ("Floorplate",)
        file_name.organization = ("",)

    def export(self, output_path: str | Path) -> Path:
        """Export the plan to an IFC file. Returns the output path."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        self._create_contexts()

        # IFC hierarchy: Project → Site → Building → Storey → Spaces
        ifc_project = self._create_project()
        ifc_site = self._create_site(ifc_project)
        ifc_building = self._create_building(ifc_site)
        self._export_storey(ifc_building)

        self.file.write(str(output_path))
        return output_path

    def _create_contexts(self) -> None:
        """Create geometric representation contexts."""
        self._context = self.file.createIfcGeometricRepresentationContext(
            ContextIdentifier="3D",
            ContextType="Model",
            CoordinateSpaceDimension=3,
            Precision=1e-5,
            WorldCoordinateSystem=self.file.createIfcAxis2Placement3D(
                Location=self.file.createIfcCartesianPoint((0.0, 0.0, 0.0)),
            ),
            TrueNorth=self.file.createIfcDirection((0.0, 1.0)),
        )
        self._body_context = self.file.createIfcGeometricRepresentationSubContext(
            ContextIdentifier="Body",
            ContextType="Model",
            ParentContext=self._context,
            TargetView="MODEL_VIEW",
        )

    def _create_project(self) -> ifcopenshell.entity_instance:
        """Create IfcProject with SI units."""
        units = [
            self.file.createIfcSIUnit(UnitType="LENGTHUNIT", Name="METRE"),
            self.file.createIfcSIUnit(UnitType="AREAUNIT", Name="SQUARE_METRE"),
            self.file.createIfcSIUnit(UnitType="VOLUMEUNIT", Name="CUBIC_METRE"),
            self.file.createIfcSIUnit(UnitType="PLANEANGLEUNIT", Name="RADIAN"),
        ]
        return self.file.createIfcProject(
            GlobalId=self._guid("project"),
            Name=self.name,
            UnitsInContext=self.file.createIfcUnitAssignment(Units=units),
            RepresentationContexts=[self._context],
        )

    def _create_site(
        self, project: ifcopenshell.entity_instance
    ) -> ifcopenshell.entity_instance:
        """Create IfcSite and attach to project."""
        site = self.file.createIfcSite(
            GlobalId=self._guid("site"),
            Name="Default Site",
            CompositionType="ELEMENT",
        )
        self.file.createIfcRelAggregates(
            GlobalId=self._guid("rel", "project-site"),
            RelatingObject=project,
            RelatedObjects=[site],
        )
        return site

    def _create_building(
        self, site: ifcopenshell.entity_instance
    ) -> ifcopenshell.entity_instance:
        """Create IfcBuilding placed at the footprint center and rotation."""
        t = self.plan.transform
        self._building_placement = self._create_local_placement(
            origin=(t.center_x, t.center_y, 0.0),
            x_dir=(math.cos(t.rotation), math.sin(t.rotation), 0.0),
        )
        ifc_building = self.file.createIfcBuilding(
            GlobalId=self._guid("building"),
            Name=self.name,
            ObjectPlacement=self._building_placement,
            CompositionType="ELEMENT",
        )
        self.file.createIfcRelAggregates(
            GlobalId=self._guid("rel", "site-building"),
            RelatingObject=site,
            RelatedObjects=[ifc_building],
        )
        return ifc_building

    def _export_storey(self, ifc_building: ifcopenshell.entity_instance) -> None:
        """Export the floor as one storey with all its spaces."""
        plan = self.plan
        storey_placement = self._create_local_placement(
            origin=(0.0, 0.0, plan.floor_elevation),
            relative_to=self._building_placement,
        )
        ifc_storey = self.file.createIfcBuildingStorey(
            GlobalId=self._guid("storey"),
            Name="Floor",
            ObjectPlacement=storey_placement,
            CompositionType="ELEMENT",
            Elevation=plan.floor_elevation,
        )
        self.file.createIfcRelAggregates(
            GlobalId=self._guid("rel", "building-storey"),
            RelatingObject=ifc_building,
            RelatedObjects=[ifc_storey],
        )

        spaces = []
        for unit in plan.units:
            spaces.append(self._create_space(
                unit.id, unit.outline(), storey_placement,
                name=f"{unit.type_name} {unit.id}",
                props={
                    "UnitType": unit.type_id,
                    "Side": unit.side.value,
                    "Color": unit.color,
                    "Shape": "L" if unit.is_l_shaped else "Rectangle",
                },
                area=unit.area,
            ))
        for core in plan.cores:
            spaces.append(self._create_space(
                core.id, core.rect.corners(), storey_placement,
                name=core.id,
                props={"SpaceUse": "core", "CoreKind": core.kind.value},
            ))
        if plan.corridor.width > 0:
            spaces.append(self._create_space(
                "corridor", plan.corridor.rect.corners(), storey_placement,
                name="Corridor",
                props={"SpaceUse": "circulation"},
            ))
        for filler in plan.fillers:
            spaces.append(self._create_space(
                filler.id, filler.rect.corners(), storey_placement,
                name=filler.id,
                props={"SpaceUse": filler.space_use},
            ))

        if spaces:
            self.file.createIfcRelAggregates(
                GlobalId=self._guid("rel", "storey-spaces"),
                RelatingObject=ifc_storey,
                RelatedObjects=spaces,
            )

    def _create_space(
        self,
        element_id: str,
        outline: list[Point2D],
        storey_placement: ifcopenshell.entity_instance,
        name: str,
        props: dict[str, str],
        area: float | None = None,
    ) -> ifcopenshell.entity_instance:
        """Create an IfcSpace with extruded outline geometry."""
        if signed_area(outline) < 0:
            outline = list(reversed(outline))
        ifc_points = [self.file.createIfcCartesianPoint((p.x, p.y)) for p in outline]
        ifc_points.append(ifc_points[0])

        polyline = self.file.createIfcPolyline(Points=ifc_points)
        profile = self.file.createIfcArbitraryClosedProfileDef(
            ProfileType="AREA",
            OuterCurve=polyline,
        )
        solid = self.file.createIfcExtrudedAreaSolid(
            SweptArea=profile,
            Position=self.file.createIfcAxis2Placement3D(
                Location=self.file.createIfcCartesianPoint((0.0, 0.0, 0.0)),
            ),
            ExtrudedDirection=self.file.createIfcDirection((0.0, 0.0, 1.0)),
            Depth=self.plan.floor_height,
        )
        shape = self.file.createIfcShapeRepresentation(
            ContextOfItems=self._body_context,
            RepresentationIdentifier="Body",
            RepresentationType="SweptSolid",
            Items=[solid],
        )
        product_shape = self.file.createIfcProductDefinitionShape(
            Representations=[shape],
        )

        ifc_space = self.file.createIfcSpace(
            GlobalId=self._guid("space", element_id),
            Name=name,
            ObjectPlacement=self._create_local_placement(relative_to=storey_placement),
            Representation=product_shape,
            CompositionType="ELEMENT",
            InteriorOrExteriorSpace="INTERNAL",
        )

        values = [
            self.file.createIfcPropertySingleValue(
                Name=key,
                NominalValue=self.file.create_entity("IfcLabel", value),
            )
            for key, value in props.items()
        ]
        if area is not None:
            values.append(
                self.file.createIfcPropertySingleValue(
                    Name="NetArea",
                    NominalValue=self.file.create_entity("IfcAreaMeasure", area),
                )
            )
        pset = self.file.createIfcPropertySet(
            GlobalId=self._guid("pset", element_id),
            Name="Pset_SpaceCommon",
            HasProperties=values,
        )
        self.file.createIfcRelDefinesByProperties(
            GlobalId=self._guid("rel", "pset", element_id),
            RelatedObjects=[ifc_space],
            RelatingPropertyDefinition=pset,
        )
        return ifc_space

    def _create_local_placement(
        self,
        origin: tuple[float, float, float] = (0.0, 0.0, 0.0),
        z_dir: tuple[float, float, float] = (0.0, 0.0, 1.0),
        x_dir: tuple[float, float, float] = (1.0, 0.0, 0.0),
        relative_to: ifcopenshell.entity_instance | None = None,
    ) -> ifcopenshell.entity_instance:
        """Create an IfcLocalPlacement."""
        axis2 = self.file.createIfcAxis2Placement3D(
            Location=self.file.createIfcCartesianPoint(origin),
            Axis=self.file.createIfcDirection(z_dir),
            RefDirection=self.file.createIfcDirection(x_dir),
        )
        return self.file.createIfcLocalPlacement(
            PlacementRelTo=relative_to,
            RelativePlacement=axis2,
        )


def export_ifc(plan: FloorPlan, output_path: str | Path, name: str = "Floorplate") -> Path:
    """Write `plan` to `output_path` as IFC 2x3."""
    return IFCExporter(plan, name=name).export(output_path)
