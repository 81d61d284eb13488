from joinkit import Table, intersect, union, setdiff

df1 = Table({"x": [1, 2], "y": [1, 1]})
df2 = Table({"x": [1, 2], "y": [1, 2]})

print(intersect(df1, df2))
print(union(df1, df2))  # 3 rows, not 4
print(setdiff(df1, df2))
print(setdiff(df2, df1))
