from smart_disenchant import records
from smart_disenchant.config import PatcherSettings
from smart_disenchant.load_order import LoadOrder, PluginDump
from smart_disenchant.patch_mod import PatchMod
from smart_disenchant.patcher import (
    OUTCOME_IGNORED,
    OUTCOME_PATCHED,
    RULE_UNSUPPORTED_KIND,
    remove_disallow_enchanting,
    run_patch,
)
from smart_disenchant.records import (
    Condition,
    EffectEntry,
    FormKey,
    GenericRecord,
    ItemKind,
    ItemRecord,
    Keywords,
    ObjectEffectRecord,
    ScriptEntry,
    ScriptProperty,
)

ENCH_PLAIN = FormKey.parse("000900:Mod.esp")
ENCH_EQUIPPED = FormKey.parse("000901:Mod.esp")
ACTIVATOR = FormKey.parse("000A03:Mod.esp")
VENDOR_KEYWORD = FormKey.parse("08F958:Skyrim.esm")
MATERIAL_KEYWORD = FormKey.parse("01E71F:Skyrim.esm")


def _item(local_id, editor_id, kind=ItemKind.WEAPON, keywords=None, **extra):
    if keywords is None:
        keywords = [VENDOR_KEYWORD, Keywords.MAGIC_DISALLOW_ENCHANTING, MATERIAL_KEYWORD]
    return ItemRecord(
        FormKey(local_id, "Mod.esp"),
        kind,
        editor_id=editor_id,
        enchantment=extra.pop("enchantment", ENCH_PLAIN),
        keywords=keywords,
        **extra,
    )


def _load_order(items):
    support = [
        ObjectEffectRecord(ENCH_PLAIN, effects=[EffectEntry()]),
        ObjectEffectRecord(ENCH_EQUIPPED, effects=[EffectEntry(conditions=[Condition("WornHasKeyword")])]),
        GenericRecord(ACTIVATOR, "ACTI"),
    ]
    return LoadOrder([PluginDump("Mod.esp", records=[*support, *items])])


def _run(items, settings=None):
    load_order = _load_order(items)
    patch_mod = PatchMod("SmartDisenchantEverything.esp")
    report = run_patch(load_order.winning_items(), settings or PatcherSettings(), load_order.link_cache(), patch_mod)
    return report, patch_mod


def _mixed_items():
    return [
        _item(0x800, "PatchedSword"),
        _item(0x801, "EquippedRing", kind=ItemKind.ARMOR, enchantment=ENCH_EQUIPPED),
        _item(0x802, "ScriptedAxe", scripts=[ScriptEntry("AxeScript", [ScriptProperty("Thing", target=ACTIVATOR)])]),
        _item(0x803, "PlainShield", kind=ItemKind.ARMOR, keywords=[VENDOR_KEYWORD]),
        _item(0x804, "PatchedHelm", kind=ItemKind.ARMOR),
        _item(0x805, "BlacklistedBow"),
    ]


def test_run_patch_sorts_items_into_buckets():
    settings = PatcherSettings(item_blacklist={FormKey(0x805, "Mod.esp")})
    report, patch_mod = _run(_mixed_items(), settings)
    assert report.patched_items == ["PatchedSword", "PatchedHelm"]
    assert report.skipped_items == ["EquippedRing"]
    assert report.manual_check_items == ["ScriptedAxe"]
    assert {str(record.form_key) for record in patch_mod} == {"000800:Mod.esp", "000804:Mod.esp"}


def test_items_land_in_at_most_one_bucket():
    report, _ = _run(_mixed_items())
    names = report.patched_items + report.skipped_items + report.manual_check_items
    assert len(names) == len(set(names))
    assert len(report.outcomes) == len(_mixed_items())


def test_patched_override_keeps_other_keywords_in_order():
    # Scenario F with extra keywords around the removed one
    report, patch_mod = _run([_item(0x800, "PatchedSword")])
    override = patch_mod.get(FormKey(0x800, "Mod.esp"))
    assert override.keywords == [VENDOR_KEYWORD, MATERIAL_KEYWORD]
    assert report.patched_items == ["PatchedSword"]


def test_scenario_f_single_keyword_is_emptied():
    report, patch_mod = _run([_item(0x800, "WeaponF", keywords=[Keywords.MAGIC_DISALLOW_ENCHANTING])])
    assert report.patched_items == ["WeaponF"]
    assert patch_mod.get(FormKey(0x800, "Mod.esp")).keywords == []


def test_source_records_are_not_mutated():
    item = _item(0x800, "PatchedSword")
    _run([item])
    assert Keywords.MAGIC_DISALLOW_ENCHANTING in item.keywords


def test_blacklisted_items_are_never_touched():
    item = _item(0x800, "BlacklistedSword")
    report, patch_mod = _run([item], PatcherSettings(item_blacklist={item.form_key}))
    assert report.patched_items == report.skipped_items == report.manual_check_items == []
    assert len(patch_mod) == 0
    assert report.outcomes[0].outcome == OUTCOME_IGNORED


def test_items_without_editor_id_are_patched_but_not_listed():
    report, patch_mod = _run([_item(0x800, None)])
    assert report.patched_items == []
    assert len(patch_mod) == 1
    assert report.outcomes[0].outcome == OUTCOME_PATCHED


def test_eligible_non_weapon_non_armor_gets_no_bucket(monkeypatch):
    monkeypatch.setitem(
        records.KIND_CAPABILITIES,
        ItemKind.BOOK,
        frozenset({"enchantable", "keyworded", "scripted"}),
    )
    report, patch_mod = _run([_item(0x800, "EnchantedTome", kind=ItemKind.BOOK)])
    assert report.patched_items == []
    assert len(patch_mod) == 0
    assert report.outcomes[0].rule == RULE_UNSUPPORTED_KIND


def test_run_patch_is_repeatable():
    settings = PatcherSettings()
    first_report, first_mod = _run(_mixed_items(), settings)
    second_report, second_mod = _run(_mixed_items(), settings)
    assert first_report == second_report
    assert [record for record in first_mod] == [record for record in second_mod]


def test_remove_disallow_enchanting_requires_keyword_list():
    override = _item(0x800, "Sword")
    override.keywords = None
    assert remove_disallow_enchanting(override) is False


def test_remove_disallow_enchanting_strips_duplicates():
    override = _item(0x800, "Sword")
    override.keywords = [
        Keywords.MAGIC_DISALLOW_ENCHANTING,
        VENDOR_KEYWORD,
        Keywords.MAGIC_DISALLOW_ENCHANTING,
    ]
    assert remove_disallow_enchanting(override) is True
    assert override.keywords == [VENDOR_KEYWORD]
