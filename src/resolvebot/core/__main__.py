"""CLI 入口模块 -- python -m resolvebot.core <command>

支持的命令：
  init-db   创建 resolve_tasks 表与索引
  due       列出当前 due set（不发送提醒）
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m resolvebot.core <command>")
        print("命令:")
        print("  init-db  创建 resolve_tasks 表与索引")
        print("  due      列出当前 due set")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "due":
        asyncio.run(show_due_tasks())
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, due")
        sys.exit(1)


async def init_database() -> None:
    """初始化数据库"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        if not store_group.ready:
            print("初始化失败，请查看日志")
            sys.exit(1)
        total = await store_group.task_store.count_tasks()
        print(f"初始化完成，现有任务 {total} 条")
    finally:
        await store_group.conn.close()


async def show_due_tasks() -> None:
    """打印 due set"""
    from .clock import utc_now
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        tasks = await store_group.task_store.list_due_tasks(utc_now())
        if not tasks:
            print("没有需要提醒的任务")
            return
        for task in tasks:
            print(
                f"{task.task_id}  assignee={task.assignee_id}  "
                f"ping_count={task.ping_count}  next_ping_at={task.next_ping_at.isoformat()}"
            )
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
