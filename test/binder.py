"""
Tests for the argument binder.

Scope
- Token grammar: long and short flags, inline and spaced values, clustered booleans.
- Case handling: flag names are case-insensitive, values are preserved.
- Error policy: which faults stop the scan and which only skip one flag.
- Parser ownership: one fresh parser per flag, fed again when the flag repeats.
"""
import unittest
from datetime import datetime, timedelta, timezone
from unittest import TestCase

from flagship import *

from models import *


class TestBind(TestCase):
    def setUp(self):
        self.schema = walk(Configuration)
        self.registry = Registry({list[ServerInfo]: ServersValue()})

    def bind(self, arguments, schema=None):
        bound, fault = bind(arguments, self.schema if schema is None else schema, self.registry)
        return {path: parser.get() for path, parser in bound.items()}, fault

    def testLongInline(self):
        self.assertEqual(self.bind(["--loglevel=OFF"]), ({"loglevel": "OFF"}, None))

    def testLongSpaced(self):
        self.assertEqual(self.bind(["--db.ip", "192.168.1.1"]), ({"db.ip": "192.168.1.1"}, None))

    def testShortForms(self):
        for arguments in (["-lOFF"], ["-l=OFF"], ["-l", "OFF"]):
            with self.subTest(arguments=arguments):
                self.assertEqual(self.bind(arguments), ({"loglevel": "OFF"}, None))

    def testTogglesNeverConsumeTheNextToken(self):
        self.assertEqual(self.bind(["--db", "--db.ip=1.1.1.1"]), ({"db": True, "db.ip": "1.1.1.1"}, None))
        bound, fault = self.bind(["--db", "stray"])
        self.assertEqual(bound, {"db": True})
        self.assertIsNone(fault)

    def testExplicitBooleans(self):
        self.assertEqual(self.bind(["--db=FALSE"]), ({"db": False}, None))
        self.assertEqual(self.bind(["--db.watch=t"]), ({"db.watch": True}, None))

    def testEveryFlag(self):
        bound, fault = self.bind([
            "--loglevel=INFO",
            "--timeout=1s",
            "--db",
            "--db.watch",
            "--db.ip=192.168.1.2",
            "--db.load=-1",
            "--db.comax=3200000000",
            "--db.connection-max64=6400000000000000000",
            "--owner",
            "--owner.name",
            "--owner.dob=2016-04-20T17:39:00Z",
            "--owner.rate=0.222",
            "--owner.servers=1.0.0.1",
            "--owner.servers=1.0.0.2",
        ])
        self.assertIsNone(fault)
        self.assertEqual(bound, {
            "loglevel": "INFO",
            "timeout": timedelta(seconds=1),
            "db": True,
            "db.watch": True,
            "db.ip": "192.168.1.2",
            "db.load": -1,
            "db.comax": 3200000000,
            "db.connection-max64": 6400000000000000000,
            "owner": True,
            "owner.name": True,
            "owner.dob": datetime(2016, 4, 20, 17, 39, tzinfo=timezone.utc),
            "owner.rate": 0.222,
            "owner.servers": [ServerInfo(ip="1.0.0.1"), ServerInfo(ip="1.0.0.2")],
        })

    def testFlagNamesAreCaseInsensitive(self):
        self.assertEqual(self.bind(["--LOGLEVEL=Warn"]), ({"loglevel": "Warn"}, None))
        self.assertEqual(self.bind(["--DB.IP=Host"]), ({"db.ip": "Host"}, None))
        self.assertEqual(self.bind(["-LWarn"]), ({"loglevel": "Warn"}, None))

    def testRepeatedFlagFeedsTheSameParser(self):
        self.assertEqual(self.bind(["--loglevel=A", "-l", "B"]), ({"loglevel": "B"}, None))

    def testClusteredShortBooleans(self):
        bound, fault = self.bind(["-vqn3"], walk(Switches))
        self.assertIsNone(fault)
        self.assertEqual(bound, {"verbose": True, "quiet": True, "level": 3})

    def testListsAccumulate(self):
        bound, _ = self.bind(["--tags=a,b", "--tags", "c"], walk(Switches))
        self.assertEqual(bound, {"tags": ["a", "b", "c"]})

    def testPositionalArgumentsAreIgnored(self):
        self.assertEqual(self.bind(["-", "stray", "--loglevel=INFO"]), ({"loglevel": "INFO"}, None))

    def testDoubleDashStopsFlagParsing(self):
        self.assertEqual(self.bind(["--", "--loglevel=INFO"]), ({}, None))

    def testFreshParserPerFlag(self):
        bound, _ = bind(["--db.load=1", "--db.load64=2"], self.schema, self.registry)
        self.assertIsNot(bound["db.load"], bound["db.load64"])
        self.assertEqual(self.registry.prototype(int).get(), 0)

    def testRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            bind(["--db.load", 1], self.schema, self.registry)


class TestBindWholeOptional(TestCase):
    def setUp(self):
        self.schema = walk(Configuration)
        self.registry = Registry({OwnerInfo | None: OwnerValue()})

    def testParserOwnsTheToggle(self):
        bound, fault = bind(["--owner=alice", "--db"], self.schema, self.registry)
        self.assertIsNone(fault)
        self.assertEqual(bound["owner"].get(), OwnerInfo(name="alice"))
        self.assertIs(bound["db"].get(), True)

    def testSpacedValue(self):
        bound, _ = bind(["--owner", "bob"], self.schema, self.registry)
        self.assertEqual(bound["owner"].get(), OwnerInfo(name="bob"))

    def testNeedsAValue(self):
        bound, fault = bind(["--owner"], self.schema, self.registry)
        self.assertEqual(bound, {})
        self.assertIsInstance(fault, InvalidArgumentError)
        self.assertIs(fault.options["code"], FaultCode.MISSING_VALUE)

    def testOptionalPrimitivesStayToggles(self):
        bound, fault = bind(["--owner.name", "--loglevel=INFO"], self.schema, self.registry)
        self.assertIsNone(fault)
        self.assertIs(bound["owner.name"].get(), True)


class TestBindFaults(TestCase):
    def setUp(self):
        self.schema = walk(Configuration)

    def testUnknownFlagStopsTheScan(self):
        bound, fault = bind(["--loglevel=INFO", "--bogus", "--db"], self.schema, Registry())
        self.assertEqual(list(bound), ["loglevel"])
        self.assertIsInstance(fault, UnknownFlagError)
        self.assertIn("unknown flag", fault.message)
        self.assertEqual(fault.options["index"], 2)

    def testUnknownFlagSuggestions(self):
        _, fault = bind(["--loglevl=INFO"], self.schema, Registry())
        self.assertEqual(fault.options["suggestions"][0], "--loglevel")

    def testUnknownShortFlag(self):
        _, fault = bind(["-x"], self.schema, Registry())
        self.assertIsInstance(fault, UnknownFlagError)
        self.assertEqual(fault.options["input"], "-x")

    def testParserNotFoundSkipsOneFlag(self):
        bound, fault = bind(["--owner.servers=1.0.0.1", "--loglevel=INFO"], self.schema, Registry())
        self.assertEqual(list(bound), ["loglevel"])
        self.assertIsInstance(fault, ParserNotFoundError)
        self.assertIs(fault.options["code"], FaultCode.PARSER_NOT_FOUND)

    def testInvalidArgumentSkipsOneFlag(self):
        bound, fault = bind(["--db.load=heavy", "--db.ip=1.2.3.4"], self.schema, Registry())
        self.assertEqual(list(bound), ["db.ip"])
        self.assertIsInstance(fault, InvalidArgumentError)
        self.assertIn("invalid argument", fault.message)
        self.assertEqual(fault.options["value"], "heavy")

    def testMissingValue(self):
        bound, fault = bind(["--loglevel"], self.schema, Registry())
        self.assertEqual(bound, {})
        self.assertIsInstance(fault, InvalidArgumentError)
        self.assertIs(fault.options["code"], FaultCode.MISSING_VALUE)

    def testFirstFaultIsReported(self):
        _, fault = bind(["--db.load=x", "--owner.rate=y"], self.schema, Registry())
        self.assertEqual(fault.options["input"], "--db.load")

    def testFaultsAreBindingErrors(self):
        for cls in (UnknownFlagError, ParserNotFoundError, InvalidArgumentError):
            with self.subTest(cls=cls):
                self.assertTrue(issubclass(cls, BindingError))


class TestLowercase(TestCase):
    def testTable(self):
        for token, expected in (
            (" --CamelCase=TaTa", "--camelcase=TaTa"),
            ("--Name=Value=Other", "--name=Value=Other"),
            ("-UTaTa", "-uTaTa"),
            ("--UPPERCASE", "--uppercase"),
            ("-", "-"),
            ("--", "--"),
            ("notAFlag", "notAFlag"),
        ):
            with self.subTest(token=token):
                self.assertEqual(lowercase(token), expected)


if __name__ == "__main__":
    unittest.main()
