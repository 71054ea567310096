"""
Offer aggregate tests - totals, item management and bulk operations.
"""
import dataclasses

import pytest

from offer_pricing.engine import LineItem, Offer, OfferTotals, UnitTable
from offer_pricing.exceptions import ValidationError


@pytest.fixture
def offer():
    """Two untaxed items at 100 and 200."""
    return Offer(items=[
        LineItem.from_config({'price': 100, 'id': '1', 'vat_rate': 0}),
        LineItem.from_config({'price': 200, 'id': '2', 'vat_rate': 0}),
    ])


class TestInitialization:
    def test_defaults(self):
        offer = Offer()

        assert offer.id
        assert offer.title == ''
        assert offer.items == ()
        assert offer.menu is None
        assert offer.totals == OfferTotals(total_net=0, total_vat=0, total_gross=0)

    def test_provided_values(self):
        offer = Offer(title='Test Offer', id='custom-id', menu={'name': 'Wine list'})

        assert offer.title == 'Test Offer'
        assert offer.id == 'custom-id'
        assert offer.menu == {'name': 'Wine list'}

    def test_offer_is_frozen(self, offer):
        with pytest.raises(dataclasses.FrozenInstanceError):
            offer.title = 'changed'
        assert isinstance(offer.items, tuple)

    def test_create_resolves_configs(self):
        offer = Offer.create([{'price': 10}, {'price': 20}], title='Spring')

        assert [item.price for item in offer.items] == [10, 20]
        assert offer.title == 'Spring'

    def test_with_title_and_menu(self, offer):
        renamed = offer.with_title('Autumn').with_menu('menu-7')

        assert renamed.title == 'Autumn'
        assert renamed.menu == 'menu-7'
        assert offer.title == ''
        assert renamed.items == offer.items


class TestTotals:
    def test_add_items_recalculates_totals(self):
        offer = Offer().add_items([
            {'price': 100, 'vat_rate': 20},
            {'price': 100, 'vat_rate': 20},
        ])

        assert len(offer.items) == 2
        assert offer.totals.total_net == 200
        assert offer.totals.total_vat == 40
        assert offer.totals.total_gross == 240

    def test_mixed_vat_rates(self):
        offer = Offer().add_items([
            {'price': 100, 'vat_rate': 10},
            {'price': 100, 'vat_rate': 20},
        ])

        assert offer.totals.total_net == 200
        assert offer.totals.total_vat == 30
        assert offer.totals.total_gross == 230

    def test_units_in_totals(self):
        """A case of six at 10 per bottle and 25.5% VAT."""
        offer = Offer().add_items([{'price': 10, 'unit': 'case_6', 'quantity': 1}])
        item = offer.items[0]

        assert item.total_price == 60
        assert item.total_customer_price == 75.3
        assert offer.totals.total_net == 60
        assert offer.totals.total_vat == 15.3
        assert offer.totals.total_gross == 75.3

    def test_markup_is_part_of_gross_total(self):
        offer = Offer().add_items([{'price': 100, 'margin': 50, 'vat_rate': 0, 'quantity': 2}])

        assert offer.totals.total_net == 200
        assert offer.totals.total_gross == 400


class TestItemManagement:
    def test_remove_items(self):
        offer = Offer().add_items([{'price': 100, 'id': 'item-1'}, {'price': 200, 'id': 'item-2'}])
        offer = offer.remove_items(['item-1'])

        assert [item.id for item in offer.items] == ['item-2']
        assert offer.totals.total_net == 200

    def test_remove_unknown_id_is_noop(self, offer):
        assert offer.remove_items(['missing']).items == offer.items

    def test_remove_items_with_single_string_id(self):
        offer = Offer.create([{'price': 10, 'id': 'ab'}, {'price': 20, 'id': 'a'}])
        remaining = offer.remove_items('ab')

        assert [item.id for item in remaining.items] == ['a']

    def test_set_margin_with_single_string_id(self):
        offer = Offer.create([{'price': 10, 'id': 'ab'}, {'price': 20, 'id': 'a'}])
        updated = offer.set_margin(50, 'a')

        assert updated.get_item('a').margin == 50
        assert updated.get_item('ab').margin == 0

    def test_update_item_immutably(self):
        offer = Offer().add_items([{'price': 100, 'id': '1'}])
        original_item = offer.items[0]

        updated_offer = offer.update_item('1', {'price': 200})

        assert updated_offer.items[0].price == 200
        assert original_item.price == 100
        assert offer.items[0].price == 100
        assert updated_offer is not offer

    def test_update_item_with_function(self):
        offer = Offer().add_items([{'price': 100, 'id': '1'}])
        updated = offer.update_item('1', lambda item: item.update(price=item.price + 50))

        assert updated.items[0].price == 150

    def test_update_item_busts_dependencies(self):
        offer = Offer().add_items([{'price': 100, 'customer_price': 200, 'vat_rate': 0, 'id': '1'}])
        updated = offer.update_item('1', {'margin': 75})

        assert updated.items[0].customer_price == 400

    def test_update_unknown_item_is_noop(self, offer):
        assert offer.update_item('missing', {'price': 1}).items == offer.items

    def test_swap_item_starts_a_fresh_ledger(self):
        offer = Offer().add_items([{'price': 100, 'price_per_bottle': 90, 'id': 'old'}])
        swapped = offer.swap_item('old', {'price': 50, 'id': 'new'})

        assert len(swapped.items) == 1
        new_item = swapped.items[0]
        assert new_item.id == 'new'
        assert new_item.price_per_bottle == 50
        assert new_item.explicit.price_per_bottle is False

    def test_swap_unknown_item_is_noop(self, offer):
        assert offer.swap_item('missing', {'price': 1}).items == offer.items

    def test_get_item(self, offer):
        assert offer.get_item('2').price == 200
        assert offer.get_item('missing') is None

    def test_invalid_config_leaves_offer_untouched(self, offer):
        with pytest.raises(ValidationError):
            offer.add_items([{'price': 10}, {'price': -10}])
        assert len(offer.items) == 2


class TestBulkOperations:
    def test_set_margin_for_all_items(self, offer):
        updated = offer.set_margin(50)

        assert updated.items[0].margin == 50
        assert updated.items[1].margin == 50
        assert updated.items[0].customer_price == 200

    def test_set_gross_for_specific_items(self, offer):
        updated = offer.set_gross(100, ['1'])

        assert updated.items[0].gross == 100
        assert updated.items[1].gross == 0

    def test_set_discount(self, offer):
        updated = offer.set_discount(10)

        assert updated.items[0].discount == 10
        assert updated.items[1].discount == 10
        assert updated.items[0].price_per_bottle == 90

    def test_set_quantity(self, offer):
        updated = offer.set_quantity(5)

        assert [item.quantity for item in updated.items] == [5, 5]
        assert updated.totals.total_net == 1500

    def test_set_vat_rate(self, offer):
        updated = offer.set_vat_rate(25)

        assert [item.vat_rate for item in updated.items] == [25, 25]
        assert updated.totals.total_vat == 75

    def test_set_glass_price(self, offer):
        updated = offer.set_glass_price(12)
        assert [item.glass_price for item in updated.items] == [12, 12]

    def test_bulk_update_field_with_unknown_id(self, offer):
        assert offer.bulk_update_field('quantity', 3, ['missing']).items == offer.items

    def test_bulk_update_unknown_field(self, offer):
        with pytest.raises(ValidationError):
            offer.bulk_update_field('colour', 'red')

    def test_bulk_round_customer_prices(self):
        offer = Offer(items=[
            LineItem.from_config({'price': 10, 'margin': 39, 'vat_rate': 0, 'id': '1'}),  # 16.39
            LineItem.from_config({'price': 10, 'margin': 40, 'vat_rate': 0, 'id': '2'}),  # 16.67
        ])
        rounded = offer.round_customer_prices()

        assert rounded.items[0].customer_price == 16
        assert rounded.items[1].customer_price == 17

    def test_round_customer_prices_for_subset(self):
        offer = Offer.create([
            {'price': 10, 'margin': 39, 'vat_rate': 0, 'id': '1'},
            {'price': 10, 'margin': 40, 'vat_rate': 0, 'id': '2'},
        ])
        rounded = offer.round_customer_prices(0.5, ids=['2'])

        assert rounded.items[0].customer_price == 16.39
        assert rounded.items[1].customer_price == 16.5

    def test_bulk_round_glass_prices(self):
        offer = Offer.create([
            {'price': 10, 'glass_price': 12.34, 'id': '1'},
            {'price': 10, 'glass_price': 12.67, 'id': '2'},
            {'price': 10, 'id': '3'},
        ])
        rounded = offer.round_glass_prices(0.5)

        assert [item.glass_price for item in rounded.items] == [12.5, 12.5, None]


class TestSetUnit:
    @pytest.fixture
    def offer(self):
        return Offer.create([
            {'price': 10, 'id': 'single-only', 'unit': 'single', 'available_units': ['single']},
            {'price': 10, 'id': 'caseable', 'unit': 'single', 'available_units': ['single', 'case_6']},
        ])

    def test_only_allowed_items_change(self, offer):
        updated = offer.set_unit('case_6')

        assert updated.get_item('single-only').unit == 'single'
        assert updated.get_item('caseable').unit == 'case_6'
        assert updated.get_item('caseable').price_per_unit == 60

    def test_unknown_unit_returns_same_offer(self, offer):
        assert offer.set_unit('NON_EXISTENT') is offer

    def test_custom_unit_table(self):
        units = UnitTable().with_units({'crate': 24})
        offer = Offer.create(
            [{'price': 2, 'id': 'a', 'available_units': ['bottle', 'crate']}],
            units=units,
        )
        updated = offer.set_unit('crate')

        assert updated.items[0].multiplier == 24
        assert updated.totals.total_net == 48


class TestExport:
    def test_to_dict(self, offer):
        payload = offer.to_dict()

        assert payload['id'] == offer.id
        assert payload['title'] == ''
        assert payload['menu'] is None
        assert len(payload['items']) == 2
        assert payload['totals'] == {'total_net': 300, 'total_vat': 0, 'total_gross': 300}
        assert payload['data'] == {}

    def test_from_dict_round_trip(self):
        offer = Offer.create(
            [{'price': 19.89, 'discount': 23}, {'price': 100, 'customer_price': 200}],
            title='Round trip',
            data={'customer': 'ACME'},
        )
        rebuilt = Offer.from_dict(offer.to_dict())

        assert rebuilt == offer
        assert rebuilt.totals == offer.totals

    def test_to_frame(self, offer):
        df = offer.to_frame()

        assert len(df) == 2
        assert list(df['id']) == ['1', '2']
        assert 'customer_price' in df.columns
        assert df['total_price'].sum() == 300
