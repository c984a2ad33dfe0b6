"""
Shared fixtures: small but realistic `.dtsx` documents in both layouts.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dessist.core.ingestor import parse_package_xml
from dessist.core.package import select_package_contents

DTS_NS = "www.microsoft.com/SqlServer/Dts"
SQLTASK_NS = "www.microsoft.com/sqlserver/dts/tasks/sqltask"


NIGHTLY_PACKAGE = f"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="{DTS_NS}"
  DTS:refId="Package"
  DTS:ExecutableType="Microsoft.Package"
  DTS:ObjectName="Nightly"
  DTS:DTSID="{{0F4B5C9E-0000-4000-8000-000000000001}}">
  <DTS:ConnectionManagers>
    <DTS:ConnectionManager
      DTS:refId="Package.ConnectionManagers[Warehouse]"
      DTS:CreationName="OLEDB"
      DTS:DTSID="{{AAAA1111-2222-3333-4444-555566667777}}"
      DTS:ObjectName="Warehouse">
      <DTS:ObjectData>
        <DTS:ConnectionManager DTS:ConnectionString="Data Source=.;Initial Catalog=DW;" />
      </DTS:ObjectData>
    </DTS:ConnectionManager>
  </DTS:ConnectionManagers>
  <DTS:Variables>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="RowCount">
      <DTS:VariableValue DTS:DataType="3">42</DTS:VariableValue>
    </DTS:Variable>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="TableName">
      <DTS:VariableValue DTS:DataType="8">staging.orders</DTS:VariableValue>
    </DTS:Variable>
  </DTS:Variables>
  <DTS:Executables>
    <DTS:Executable
      DTS:refId="Package\\Truncate Staging"
      DTS:ExecutableType="Microsoft.ExecuteSQLTask"
      DTS:ObjectName="Truncate Staging">
      <DTS:ObjectData>
        <SQLTask:SqlTaskData xmlns:SQLTask="{SQLTASK_NS}"
          SQLTask:Connection="{{AAAA1111-2222-3333-4444-555566667777}}"
          SQLTask:SqlStatementSource="TRUNCATE TABLE staging.orders" />
      </DTS:ObjectData>
    </DTS:Executable>
    <DTS:Executable
      DTS:refId="Package\\Load"
      DTS:ExecutableType="STOCK:SEQUENCE"
      DTS:ObjectName="Load">
      <DTS:Executables>
        <DTS:Executable
          DTS:refId="Package\\Load\\Count Rows"
          DTS:ExecutableType="Microsoft.ExecuteSQLTask"
          DTS:ObjectName="Count Rows">
          <DTS:ObjectData>
            <SQLTask:SqlTaskData xmlns:SQLTask="{SQLTASK_NS}"
              SQLTask:Connection="{{AAAA1111-2222-3333-4444-555566667777}}"
              SQLTask:SqlStatementSource="SELECT COUNT(*) FROM staging.orders"
              SQLTask:ResultType="ResultSetType_SingleRow">
              <SQLTask:ResultBinding SQLTask:ResultName="0" SQLTask:DtsVariableName="User::RowCount" />
            </SQLTask:SqlTaskData>
          </DTS:ObjectData>
        </DTS:Executable>
        <DTS:Executable
          DTS:refId="Package\\Load\\Bump"
          DTS:ExecutableType="Microsoft.ExpressionTask"
          DTS:ObjectName="Bump">
          <DTS:ObjectData>
            <ExpressionTask Expression="@[User::RowCount] = @[User::RowCount] + 1" />
          </DTS:ObjectData>
        </DTS:Executable>
      </DTS:Executables>
    </DTS:Executable>
  </DTS:Executables>
</DTS:Executable>
"""


LEGACY_PACKAGE = f"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="{DTS_NS}" DTS:ExecutableType="MSDTS.Package.1">
  <DTS:Property DTS:Name="ObjectName">Legacy</DTS:Property>
  <DTS:Variable>
    <DTS:Property DTS:Name="Namespace">User</DTS:Property>
    <DTS:Property DTS:Name="ObjectName">BatchId</DTS:Property>
    <DTS:VariableValue DTS:DataType="3">7</DTS:VariableValue>
  </DTS:Variable>
  <DTS:Executable DTS:ExecutableType="STOCK:SEQUENCE">
    <DTS:Property DTS:Name="ObjectName">Step One</DTS:Property>
  </DTS:Executable>
  <DTS:Executable DTS:ExecutableType="STOCK:SEQUENCE">
    <DTS:Property DTS:Name="ObjectName">Step Two</DTS:Property>
  </DTS:Executable>
</DTS:Executable>
"""


EMPTY_PACKAGE = f"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="{DTS_NS}" DTS:ExecutableType="Microsoft.Package" DTS:ObjectName="Empty">
  <DTS:Variables>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="Unused">
      <DTS:VariableValue DTS:DataType="8">x</DTS:VariableValue>
    </DTS:Variable>
  </DTS:Variables>
</DTS:Executable>
"""


def wrap_executables(body: str, variables: str = "", name: str = "Pkg") -> str:
    """A 2012-style package with the given `DTS:Executables` body."""
    return f"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="{DTS_NS}" xmlns:SQLTask="{SQLTASK_NS}"
  DTS:ExecutableType="Microsoft.Package" DTS:ObjectName="{name}">
  <DTS:Variables>{variables}</DTS:Variables>
  <DTS:Executables>{body}</DTS:Executables>
</DTS:Executable>
"""


def load_contents(xml: str, package_name: str | None = None):
    root = parse_package_xml(xml)
    return select_package_contents(root, package_name)


@pytest.fixture
def nightly_xml() -> str:
    return NIGHTLY_PACKAGE


@pytest.fixture
def nightly_contents():
    return load_contents(NIGHTLY_PACKAGE)


@pytest.fixture
def nightly_file(tmp_path) -> Path:
    path = tmp_path / "Nightly.dtsx"
    path.write_text(NIGHTLY_PACKAGE, encoding="utf-8")
    return path


@pytest.fixture
def empty_file(tmp_path) -> Path:
    path = tmp_path / "Empty.dtsx"
    path.write_text(EMPTY_PACKAGE, encoding="utf-8")
    return path
