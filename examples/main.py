from pgcompose import parent, select, select_exactly_one, sql, OrderBy

def main():
    """
    Builds a query with a nested lateral join and prints the compiled statement.
    No database connection is needed to compile.
    """
    latest_post = select_exactly_one("posts", {"author_id": parent("id")}, order=OrderBy(sql("created_at"), "DESC"))
    query = select("authors", {"active": True}, lateral={"latest_post": latest_post}, limit=10)

    compiled = query.compile()
    print(compiled.text)
    print(compiled.values)

if __name__ == "__main__":
    main()
