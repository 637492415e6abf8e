"""
Tests for the struct filler.

Scope
- Leaf precedence: bound value, then snapshot default, then zero value.
- Optional activation: own toggle, descendant flags, explicit false and whole-value parsers.
- Ownership: filled values are copies of the snapshot.

Conventions
- materialize() runs the same steps as load() but exposes the binding fault instead of raising.
"""
import unittest
from datetime import datetime, timedelta, timezone
from unittest import TestCase

from flagship import *

from models import *


def materialize(arguments, target, template):
    values = defaults_for(target, template)
    bound, fault = bind(arguments, walk(target), Registry({list[ServerInfo]: ServersValue()}))
    return fill(target, values, bound), fault


class TestFill(TestCase):
    def testNothingBoundLeavesOptionalsAbsent(self):
        config, fault = materialize([], Configuration(), defaults())
        self.assertIsNone(fault)
        self.assertEqual(config, Configuration())

    def testTogglesActivateDefaults(self):
        config, _ = materialize(["--db", "--owner"], Configuration(), defaults())
        self.assertEqual(config.db, defaults().db)
        self.assertEqual(config.owner, OwnerInfo(
            name=None,
            date_of_birth=datetime(1979, 5, 27, 7, 32, tzinfo=timezone.utc),
            rate=0.111,
            servers=defaults().owner.servers,
        ))

    def testDescendantActivatesAncestor(self):
        config, _ = materialize(["--owner.rate=0.5"], Configuration(), defaults())
        self.assertIsNone(config.db)
        self.assertEqual(config.owner.rate, 0.5)
        self.assertEqual(config.owner.date_of_birth, datetime(1979, 5, 27, 7, 32, tzinfo=timezone.utc))
        self.assertIsNone(config.owner.name)

    def testExplicitFalseWins(self):
        config, _ = materialize(["--db=false", "--db.ip=1.1.1.1"], Configuration(), defaults())
        self.assertIsNone(config.db)

    def testOptionalPrimitive(self):
        config, _ = materialize(["--owner.name"], Configuration(), defaults())
        self.assertEqual(config.owner.name, "DefaultOwnerNamePointer")

    def testEmbeddedFieldsAreFilled(self):
        config, _ = materialize(["--db", "--db.ip=10.0.0.1"], Configuration(), defaults())
        self.assertEqual(config.db.server, ServerInfo(watch=True, ip="10.0.0.1", load=32, load64=64))

    def testBoundListReplacesDefault(self):
        config, _ = materialize(["--owner.servers=1.0.0.1"], Configuration(), defaults())
        self.assertEqual(config.owner.servers, [ServerInfo(ip="1.0.0.1")])

    def testRepeatedStructInContainer(self):
        template = ConfigurationWithRepeatedStruct(
            repeated=RepeatedStruct(val="DefaultVal"),
            container=RepeatedStructContainer(repeated=RepeatedStruct(val="DefaultInContainer")),
        )
        config, _ = materialize(["--container.repeated.val=test"], ConfigurationWithRepeatedStruct(), template)
        self.assertEqual(config, ConfigurationWithRepeatedStruct(
            container=RepeatedStructContainer(repeated=RepeatedStruct(val="test")),
        ))

    def testLeafPrecedence(self):
        config, _ = materialize([], Configuration(loglevel="INIT"), Configuration(loglevel="TEMPLATE"))
        self.assertEqual(config.loglevel, "INIT")
        config, _ = materialize(["-l", "ARG"], Configuration(loglevel="INIT"), Configuration(loglevel="TEMPLATE"))
        self.assertEqual(config.loglevel, "ARG")
        config = fill(Configuration(loglevel="INIT"), {"loglevel": "DEFAULT"}, {})
        self.assertEqual(config.loglevel, "DEFAULT")

    def testUndescribedFieldsAreUntouched(self):
        config, _ = materialize([], Configuration(name="keep"), defaults())
        self.assertEqual(config.name, "keep")

    def testGroupsAreFilled(self):
        config, _ = materialize(["--limits.cpu=4"], GroupedConfig(), GroupedConfig())
        self.assertEqual(config.limits, Limits(cpu=4))


class TestFillFromHandBuiltMaps(TestCase):
    def testMissingDefaultsFallBackToZero(self):
        config = fill(Configuration(loglevel="x", timeout=timedelta(seconds=3)), {}, {})
        self.assertEqual(config.loglevel, "")
        self.assertEqual(config.timeout, timedelta())

    def testMissingOptionalDefaultUsesZeroPointee(self):
        parser = Registry().fresh(str)
        parser.consume("test")
        values = {
            "repeated": RepeatedStruct(val="x"),
            "container": RepeatedStructContainer(repeated=RepeatedStruct(val="DefaultInContainer")),
        }
        config = fill(ConfigurationWithRepeatedStruct(), values, {"container.repeated.val": parser})
        self.assertEqual(config, ConfigurationWithRepeatedStruct(
            container=RepeatedStructContainer(repeated=RepeatedStruct(val="test")),
        ))

    def testWholeValueParserReplacesSubObject(self):
        parser = Registry().fresh(str)
        parser.overwrite(OwnerInfo(rate=2.0))
        config = fill(Configuration(), {"owner": OwnerInfo(rate=1.0)}, {"owner": parser})
        self.assertEqual(config.owner, OwnerInfo(rate=2.0))

    def testFilledValuesAreCopies(self):
        values = snapshot(detach_optionals(defaults()), defaults())
        parser = Registry().fresh(bool)
        parser.consume("true")
        config = fill(Configuration(), values, {"owner": parser})
        config.owner.servers.append(ServerInfo(ip="10.0.0.1"))
        self.assertEqual(len(values["owner"].servers), 3)

    def testReturnsTheTarget(self):
        target = Configuration()
        self.assertIs(fill(target, {}, {}), target)

    def testRejectsTypes(self):
        with self.assertRaises(TypeError):
            fill(Configuration, {}, {})


if __name__ == "__main__":
    unittest.main()
