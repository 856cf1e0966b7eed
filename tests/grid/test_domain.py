"""
Tests for the Domain container: layer ordering, emissions input and layer
access.
"""

import numpy as np
import pytest

from aqsim.constants import NOX_TO_N, SOX_TO_S
from aqsim.errors import UnknownPollutantError
from aqsim.grid import Cell, Direction, Domain, NeighborRef, build_box_domain
from aqsim.species import Species


def _column(order):
    """Two stacked cells given in the requested layer order."""
    cells = {layer: Cell(dx=10.0, dy=10.0, dz=5.0, layer=layer, geometry=f"L{layer}")
             for layer in (0, 1)}
    listed = [cells[layer] for layer in order]
    index = {layer: order.index(layer) for layer in order}
    cells[1].add_neighbor(Direction.BELOW, NeighborRef(False, index[0]))
    cells[0].add_neighbor(Direction.ABOVE, NeighborRef(False, index[1]))
    cells[1].add_neighbor(Direction.GROUND_LEVEL, NeighborRef(False, index[0]))
    return listed, cells


class TestLayerOrdering:
    """Active cells are sorted by layer at construction."""

    def test_sorted_by_layer(self):
        listed, cells = _column([1, 0])
        domain = Domain(listed)

        assert [c.layer for c in domain.cells] == [0, 1]
        assert domain.n_layers == 2

    def test_neighbor_indices_remapped(self):
        listed, cells = _column([1, 0])
        domain = Domain(listed)

        below = domain.neighbor_cells(cells[1], Direction.BELOW)
        above = domain.neighbor_cells(cells[0], Direction.ABOVE)
        ground = domain.neighbor_cells(cells[1], Direction.GROUND_LEVEL)
        assert below == [cells[0]]
        assert above == [cells[1]]
        assert ground == [cells[0]]

    def test_stable_within_layer(self):
        cells = [Cell(dx=1.0, dy=1.0, dz=1.0, layer=layer, geometry=name)
                 for name, layer in [("a", 1), ("b", 0), ("c", 1), ("d", 0)]]
        domain = Domain(cells)
        assert [c.geometry for c in domain.cells] == ["b", "d", "a", "c"]

    def test_explicit_layer_count(self):
        domain = build_box_domain(2, 2, 3, 10.0, 10.0, 1.0)
        assert domain.n_layers == 3

    def test_empty_domain(self):
        domain = Domain([])
        assert len(domain) == 0
        assert domain.n_layers == 0


class TestEmissions:
    """Conversion of emissions rates to per-volume fluxes."""

    def test_voc_flux(self, two_cell_domain):
        volume = two_cell_domain.cells[0].volume
        two_cell_domain.add_emissions({"VOC": [1000.0, 0.0]})

        a, b = two_cell_domain.cells
        assert a.emis_flux[Species.gOrg] == pytest.approx(1000.0 / volume)
        np.testing.assert_array_equal(b.emis_flux, 0.0)

    def test_mass_conversion(self, two_cell_domain):
        volume = two_cell_domain.cells[0].volume
        two_cell_domain.add_emissions({"NOx": [1.0, 2.0], "SOx": [3.0, 0.0]})

        a, b = two_cell_domain.cells
        assert a.emis_flux[Species.gNO] == pytest.approx(NOX_TO_N / volume)
        assert b.emis_flux[Species.gNO] == pytest.approx(2.0 * NOX_TO_N / volume)
        assert a.emis_flux[Species.gS] == pytest.approx(3.0 * SOX_TO_S / volume)

    def test_unknown_pollutant(self, two_cell_domain):
        with pytest.raises(UnknownPollutantError) as exc_info:
            two_cell_domain.add_emissions({"PM2_5": [1.0, 1.0], "CO2": [1.0, 1.0]})

        assert exc_info.value.name == "CO2"
        assert isinstance(exc_info.value, KeyError)
        # Validation happens before any cell is touched
        for cell in two_cell_domain.cells:
            np.testing.assert_array_equal(cell.emis_flux, 0.0)

    def test_wrong_length(self, two_cell_domain):
        with pytest.raises(ValueError):
            two_cell_domain.add_emissions({"PM2_5": [1.0]})


class TestLayerAccess:
    """iter_layer, get_geometry and totals."""

    def test_iter_layer(self, box_domain):
        assert len(list(box_domain.iter_layer(0))) == 9
        assert len(list(box_domain.iter_layer(1))) == 9
        assert list(box_domain.iter_layer(5)) == []

    def test_get_geometry(self, box_domain):
        geometry = box_domain.get_geometry(0)
        assert len(geometry) == 9
        assert geometry[0] == (0.0, 0.0, 1000.0, 1000.0)

    def test_species_totals(self, two_cell_domain):
        a, b = two_cell_domain.cells
        a.cf[Species.pS] = 2.0
        b.cf[Species.pS] = 3.0

        totals = two_cell_domain.species_totals()
        assert totals[Species.pS] == pytest.approx(5.0)
        assert totals.sum() == pytest.approx(5.0)

    def test_reset_concentrations(self, two_cell_domain):
        a = two_cell_domain.cells[0]
        a.ci[:] = 1.0
        a.cf[:] = 1.0
        a.emis_flux[:] = 1.0

        two_cell_domain.reset_concentrations()

        np.testing.assert_array_equal(a.ci, 0.0)
        np.testing.assert_array_equal(a.cf, 0.0)
        np.testing.assert_array_equal(a.emis_flux, 0.0)
