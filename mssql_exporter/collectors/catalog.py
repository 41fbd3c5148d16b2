"""Catalog of SQL Server collectors and their queries.

``build_collectors()`` returns the collectors in the order they run on every
scrape. It registers every gauge with the given registry, so it must be
called once per registry.
"""

from prometheus_client import CollectorRegistry

from mssql_exporter.collectors.base import Collector, GaugeSpec, Observation, RowPolicy


def _performance_counter(counter_name: str, instance_name: str) -> str:
    return f"""SELECT cntr_value
  FROM sys.dm_os_performance_counters
  where counter_name = '{counter_name}' AND instance_name = '{instance_name}'"""


def build_collectors(
    support_mssql_2012: bool, registry: CollectorRegistry
) -> list[Collector]:
    """Build the ordered collector list.

    Args:
        support_mssql_2012: Use queries compatible with SQL Server 2012, which
            lacks the queued I/O stall columns (reported as 0)
        registry: Registry every gauge is registered with

    Returns:
        Collectors in execution order
    """
    queued_read = "0" if support_mssql_2012 else "max(io_stall_queued_read_ms)"
    queued_write = "0" if support_mssql_2012 else "max(io_stall_queued_write_ms)"

    mssql_instance_local_time = Collector(
        name="mssql_instance_local_time",
        query="SELECT DATEDIFF(second, '19700101', GETUTCDATE())",
        metrics={
            "mssql_instance_local_time": GaugeSpec(
                "mssql_instance_local_time",
                "Number of seconds since epoch on local instance",
            ),
        },
        observations=[Observation("mssql_instance_local_time", value=0)],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    mssql_connections = Collector(
        name="mssql_connections",
        query="""SELECT DB_NAME(sP.dbid)
          , COUNT(sP.spid)
  FROM sys.sysprocesses sP
  GROUP BY DB_NAME(sP.dbid)""",
        metrics={
            "mssql_connections": GaugeSpec(
                "mssql_connections",
                "Number of active connections",
                ("database", "state"),
            ),
        },
        observations=[
            Observation(
                "mssql_connections",
                value=1,
                labels={"database": 0},
                constants={"state": "current"},
            ),
        ],
        registry=registry,
    )

    mssql_deadlocks = Collector(
        name="mssql_deadlocks",
        query=_performance_counter("Number of Deadlocks/sec", "_Total"),
        metrics={
            "mssql_deadlocks_per_second": GaugeSpec(
                "mssql_deadlocks",
                "Number of lock requests per second that resulted in a deadlock since last restart",
            ),
        },
        observations=[Observation("mssql_deadlocks_per_second", value=0)],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    mssql_user_errors = Collector(
        name="mssql_user_errors",
        query=_performance_counter("Errors/sec", "User Errors"),
        metrics={
            "mssql_user_errors": GaugeSpec(
                "mssql_user_errors",
                "Number of user errors/sec since last restart",
            ),
        },
        observations=[Observation("mssql_user_errors", value=0)],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    mssql_kill_connection_errors = Collector(
        name="mssql_kill_connection_errors",
        query=_performance_counter("Errors/sec", "Kill Connection Errors"),
        metrics={
            "mssql_kill_connection_errors": GaugeSpec(
                "mssql_kill_connection_errors",
                "Number of kill connection errors/sec since last restart",
            ),
        },
        observations=[Observation("mssql_kill_connection_errors", value=0)],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    mssql_database_state = Collector(
        name="mssql_database_state",
        query="SELECT name,state FROM master.sys.databases",
        metrics={
            "mssql_database_state": GaugeSpec(
                "mssql_database_state",
                "Databases states: 0=ONLINE 1=RESTORING 2=RECOVERING 3=RECOVERY_PENDING "
                "4=SUSPECT 5=EMERGENCY 6=OFFLINE 7=COPYING 10=OFFLINE_SECONDARY",
                ("database",),
            ),
        },
        observations=[
            Observation("mssql_database_state", value=1, labels={"database": 0}),
        ],
        registry=registry,
    )

    mssql_log_growths = Collector(
        name="mssql_log_growths",
        query="""SELECT rtrim(instance_name),cntr_value
  FROM sys.dm_os_performance_counters where counter_name = 'Log Growths'
  and  instance_name <> '_Total'""",
        metrics={
            "mssql_log_growths": GaugeSpec(
                "mssql_log_growths",
                "Total number of times the transaction log for the database has been expanded last restart",
                ("database",),
            ),
        },
        observations=[
            Observation("mssql_log_growths", value=1, labels={"database": 0}),
        ],
        registry=registry,
    )

    mssql_database_filesize = Collector(
        name="mssql_database_filesize",
        query="SELECT DB_NAME(database_id) AS database_name, Name AS logical_name, "
        "type, physical_name, (size * 8) size_kb FROM sys.master_files",
        metrics={
            "mssql_database_filesize": GaugeSpec(
                "mssql_database_filesize",
                "Physical sizes of files used by database in KB, their names and types "
                "(0=rows, 1=log, 2=filestream,3=n/a 4=fulltext(before v2008 of MSSQL))",
                ("database", "logicalname", "type", "filename"),
            ),
        },
        observations=[
            Observation(
                "mssql_database_filesize",
                value=4,
                labels={"database": 0, "logicalname": 1, "type": 2, "filename": 3},
            ),
        ],
        registry=registry,
    )

    mssql_page_life_expectancy = Collector(
        name="mssql_page_life_expectancy",
        query="""SELECT TOP 1  cntr_value
  FROM sys.dm_os_performance_counters with (nolock)where counter_name='Page life expectancy'""",
        metrics={
            "mssql_page_life_expectancy": GaugeSpec(
                "mssql_page_life_expectancy",
                "Indicates the minimum number of seconds a page will stay in the buffer pool "
                "on this node without references. The traditional advice from Microsoft used "
                "to be that the PLE should remain above 300 seconds",
            ),
        },
        observations=[Observation("mssql_page_life_expectancy", value=0)],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    # One row per database fans out to the total and four typed stall gauges
    mssql_io_stall = Collector(
        name="mssql_io_stall",
        query=f"""SELECT
  cast(DB_Name(a.database_id) as varchar) as name,
      max(io_stall_read_ms),
      max(io_stall_write_ms),
      max(io_stall),
      {queued_read},
      {queued_write}
  FROM
  sys.dm_io_virtual_file_stats(null, null) a
  INNER JOIN sys.master_files b ON a.database_id = b.database_id and a.file_id = b.file_id
  group by a.database_id""",
        metrics={
            "mssql_io_stall": GaugeSpec(
                "mssql_io_stall",
                "Wait time (ms) of stall since last restart",
                ("database", "type"),
            ),
            "mssql_io_stall_total": GaugeSpec(
                "mssql_io_stall_total",
                "Wait time (ms) of stall since last restart",
                ("database",),
            ),
        },
        observations=[
            Observation("mssql_io_stall_total", value=3, labels={"database": 0}),
            Observation(
                "mssql_io_stall", value=1, labels={"database": 0}, constants={"type": "read"}
            ),
            Observation(
                "mssql_io_stall", value=2, labels={"database": 0}, constants={"type": "write"}
            ),
            Observation(
                "mssql_io_stall",
                value=4,
                labels={"database": 0},
                constants={"type": "queued_read"},
            ),
            Observation(
                "mssql_io_stall",
                value=5,
                labels={"database": 0},
                constants={"type": "queued_write"},
            ),
        ],
        registry=registry,
    )

    mssql_batch_requests = Collector(
        name="mssql_batch_requests",
        query="""SELECT TOP 1 cntr_value
  FROM sys.dm_os_performance_counters where counter_name = 'Batch Requests/sec'""",
        metrics={
            "mssql_batch_requests": GaugeSpec(
                "mssql_batch_requests",
                "Number of Transact-SQL command batches received per second. This statistic is "
                "affected by all constraints (such as I/O, number of users, cachesize, complexity "
                "of requests, and so on). High batch requests mean good throughput",
            ),
        },
        observations=[Observation("mssql_batch_requests", value=0)],
        rows=RowPolicy.FIRST,
        registry=registry,
    )

    mssql_os_process_memory = Collector(
        name="mssql_os_process_memory",
        query="""SELECT page_fault_count, memory_utilization_percentage
  from sys.dm_os_process_memory""",
        metrics={
            "mssql_page_fault_count": GaugeSpec(
                "mssql_page_fault_count",
                "Number of page faults since last restart",
            ),
            "mssql_memory_utilization_percentage": GaugeSpec(
                "mssql_memory_utilization_percentage",
                "Percentage of memory utilization",
            ),
        },
        observations=[
            Observation("mssql_page_fault_count", value=0),
            Observation("mssql_memory_utilization_percentage", value=1),
        ],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    mssql_os_sys_memory = Collector(
        name="mssql_os_sys_memory",
        query="""SELECT total_physical_memory_kb, available_physical_memory_kb, total_page_file_kb, available_page_file_kb
  from sys.dm_os_sys_memory""",
        metrics={
            "mssql_total_physical_memory_kb": GaugeSpec(
                "mssql_total_physical_memory_kb",
                "Total physical memory in KB",
            ),
            "mssql_available_physical_memory_kb": GaugeSpec(
                "mssql_available_physical_memory_kb",
                "Available physical memory in KB",
            ),
            "mssql_total_page_file_kb": GaugeSpec(
                "mssql_total_page_file_kb",
                "Total page file in KB",
            ),
            "mssql_available_page_file_kb": GaugeSpec(
                "mssql_available_page_file_kb",
                "Available page file in KB",
            ),
        },
        observations=[
            Observation("mssql_total_physical_memory_kb", value=0),
            Observation("mssql_available_physical_memory_kb", value=1),
            Observation("mssql_total_page_file_kb", value=2),
            Observation("mssql_available_page_file_kb", value=3),
        ],
        rows=RowPolicy.SINGLE,
        registry=registry,
    )

    mssql_oldest_transaction_age = Collector(
        name="mssql_oldest_transaction_age",
        query="""
SELECT DB_NAME(db.database_id) as 'database'
     , ISNULL(trans.tran_elapsed_time_seconds, 0)
  FROM sys.databases db
  LEFT JOIN (
       SELECT max(DATEDIFF(SECOND, transaction_begin_time, GETDATE())) as tran_elapsed_time_seconds
            , tdt.database_id
         FROM sys.dm_tran_active_transactions tat
         JOIN sys.dm_tran_database_transactions tdt
           ON tat.transaction_id = tdt.transaction_id
         JOIN sys.dm_tran_session_transactions tst
           ON tat.transaction_id = tst.transaction_id
        GROUP BY tdt.database_id
     ) trans
    ON db.database_id = trans.database_id
""",
        metrics={
            "mssql_oldest_transaction_age": GaugeSpec(
                "mssql_oldest_transactions",
                "Age of the oldest transaction by database in seconds",
                ("database",),
            ),
        },
        observations=[
            Observation("mssql_oldest_transaction_age", value=1, labels={"database": 0}),
        ],
        registry=registry,
    )

    mssql_volume_stats = Collector(
        name="mssql_volume_stats",
        query="""
SELECT distinct(volume_mount_point)
     , total_bytes
     , available_bytes
  FROM sys.master_files AS f CROSS APPLY
       sys.dm_os_volume_stats(f.database_id, f.file_id)
 GROUP by volume_mount_point
     , total_bytes
     , available_bytes
""",
        metrics={
            "mssql_volume_total_bytes": GaugeSpec(
                "mssql_volume_total_bytes",
                "Total size in bytes of the volume",
                ("volume_mount_point",),
            ),
            "mssql_volume_available_bytes": GaugeSpec(
                "mssql_volume_available_bytes",
                "Available free space on the volume",
                ("volume_mount_point",),
            ),
        },
        observations=[
            Observation(
                "mssql_volume_total_bytes", value=1, labels={"volume_mount_point": 0}
            ),
            Observation(
                "mssql_volume_available_bytes", value=2, labels={"volume_mount_point": 0}
            ),
        ],
        registry=registry,
    )

    return [
        mssql_instance_local_time,
        mssql_connections,
        mssql_deadlocks,
        mssql_user_errors,
        mssql_kill_connection_errors,
        mssql_database_state,
        mssql_log_growths,
        mssql_database_filesize,
        mssql_page_life_expectancy,
        mssql_io_stall,
        mssql_batch_requests,
        mssql_os_process_memory,
        mssql_os_sys_memory,
        mssql_oldest_transaction_age,
        mssql_volume_stats,
    ]
